"""
Serialization helpers for the SDK's dataclasses.

SerializableMixin gives Credentials, TokenValidation and AuthStatus a
consistent ``to_dict`` / ``from_dict`` pair so an embedding application can
persist credentials across process restarts or hand status objects to a JSON
API:

    creds = client.auth.get_credentials()
    store.save(creds.to_dict())
    ...
    client.auth.set_credentials(Credentials.from_dict(store.load()))

Handles:
- datetime → ISO format
- Enum → value
- nested dataclasses → recursive to_dict()
- optional omission of ``None`` fields
"""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, Type, TypeVar

T = TypeVar("T", bound="SerializableMixin")


def serialize_value(value: Any) -> Any:
    """Recursively convert a value into JSON-compatible primitives."""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value) and hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple, set, frozenset)):
        return [serialize_value(v) for v in value]
    if isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    return value


class SerializableMixin:
    """Mixin providing ``to_dict`` / ``from_dict`` for dataclasses.

    Configuration:
    - _exclude_fields: field names never serialized
    - _omit_none: drop fields whose value is None
    """

    _exclude_fields: ClassVar[tuple[str, ...]] = ()
    _omit_none: ClassVar[bool] = False

    def to_dict(self) -> Dict[str, Any]:
        if not is_dataclass(self):
            raise TypeError(f"{self.__class__.__name__} must be a dataclass")

        result: Dict[str, Any] = {}
        for f in fields(self):
            if f.name in self._exclude_fields or f.name.startswith("_"):
                continue
            value = getattr(self, f.name)
            if value is None and self._omit_none:
                continue
            result[f.name] = serialize_value(value)
        return result

    @classmethod
    def from_dict(cls: Type[T], data: Dict[str, Any]) -> T:
        """Build an instance from a dict, ignoring keys that are not fields."""
        if not is_dataclass(cls):
            raise TypeError(f"{cls.__name__} must be a dataclass")
        names = {f.name for f in fields(cls) if f.init}
        return cls(**{k: v for k, v in data.items() if k in names})


__all__ = ["SerializableMixin", "serialize_value"]
