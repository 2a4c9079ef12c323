"""
Shared type aliases.

Resource entities are plain JSON dicts shaped by the remote API.
"""

from __future__ import annotations

from typing import Any, Dict

JsonDict = Dict[str, Any]

DEFAULT_CURRENCY = "CAD"

__all__ = ["DEFAULT_CURRENCY", "JsonDict"]
