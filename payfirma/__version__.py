"""
Version information for the payfirma package.
"""

from __future__ import annotations

VERSION_INFO = (1, 0, 0)
__version__ = ".".join(str(part) for part in VERSION_INFO)

USER_AGENT = f"Payfirma-SDK-Python/{__version__}"

__all__ = ["__version__", "VERSION_INFO", "USER_AGENT"]
