"""
Key-case transformation between camelCase and snake_case.

The Payfirma API speaks snake_case. Applications may prefer camelCase
payloads, so the transport can rewrite outbound request keys to snake_case and
inbound response keys to camelCase.

The two string rules are deliberately simple and are not exact inverses:

- camel_to_snake prefixes every ASCII capital with ``_`` and lowercases it,
  so ``ipV4Address`` becomes ``ip_v4_address`` and ``ABC`` becomes ``_a_b_c``.
- snake_to_camel only folds ``_`` followed by a lowercase ASCII letter, so
  ``ip_v4_address`` becomes ``ipV4Address`` while ``address_1``, ``_id`` and
  ``a__b`` keep their underscores.

Round trips are therefore exact only for keys made of letters that start
lowercase. Other spellings are passed through rather than guessed at, since
the API's own key spellings must be matched byte for byte.
"""

from __future__ import annotations

import re
from typing import Any

_UPPER = re.compile(r"[A-Z]")
_UNDERSCORE_LOWER = re.compile(r"_([a-z])")


def camel_to_snake(key: str) -> str:
    """``firstName`` → ``first_name``."""
    return _UPPER.sub(lambda m: "_" + m.group(0).lower(), key)


def snake_to_camel(key: str) -> str:
    """``first_name`` → ``firstName``."""
    return _UNDERSCORE_LOWER.sub(lambda m: m.group(1).upper(), key)


def _transform_keys(value: Any, rule) -> Any:
    if isinstance(value, dict):
        return {
            (rule(k) if isinstance(k, str) else k): _transform_keys(v, rule)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_transform_keys(item, rule) for item in value]
    return value


def transform_keys_to_snake(value: Any) -> Any:
    """Return a copy of a JSON-like value with every mapping key in snake_case.

    Mappings and sequences are rebuilt recursively; scalars and None are
    returned unchanged.
    """
    return _transform_keys(value, camel_to_snake)


def transform_keys_to_camel(value: Any) -> Any:
    """Return a copy of a JSON-like value with every mapping key in camelCase."""
    return _transform_keys(value, snake_to_camel)


__all__ = [
    "camel_to_snake",
    "snake_to_camel",
    "transform_keys_to_snake",
    "transform_keys_to_camel",
]
