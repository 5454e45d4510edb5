from datetime import datetime
from enum import Enum
from typing import Dict, Any


def parse_timestamp(value: Any) -> Any:
    """Parse an ISO timestamp coming back from PostgREST. Non-strings pass through."""
    if value and isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace('Z', "+00:00"))
        except ValueError:
            return value
    return value


class BaseModel:
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BaseModel':
        if not data:
            return None

        instance = cls()
        for key, value in data.items():
            if key.endswith("_at"):
                value = parse_timestamp(value)

            # Set attribute if it exists on the class
            if hasattr(instance, key):
                setattr(instance, key, value)

        return instance

    def to_dict(self) -> Dict[str, Any]:
        result = {}
        for attr_name, attr_value in self.__dict__.items():
            if attr_name.startswith('_'):
                continue

            if isinstance(attr_value, datetime):
                attr_value = attr_value.isoformat()
            elif isinstance(attr_value, Enum):
                attr_value = attr_value.value
            elif isinstance(attr_value, list):
                attr_value = list(attr_value)

            result[attr_name] = attr_value

        return result
