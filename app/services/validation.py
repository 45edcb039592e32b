# app/services/validation.py

from enum import Enum
from typing import Any, Type, TypeVar

from exceptions.domain_exceptions import InvalidArgumentException

E = TypeVar("E", bound=Enum)

# Width of the user id columns
MAX_USER_ID_LENGTH = 64


def require_user_id(value: Any, field_name: str) -> str:
    """User ids are opaque, non-empty strings"""
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentException(
            message="User id must be a non-empty string",
            details={field_name: value}
        )
    if len(value) > MAX_USER_ID_LENGTH:
        raise InvalidArgumentException(
            message=f"User id must be at most {MAX_USER_ID_LENGTH} characters",
            details={field_name: value}
        )
    return value


def parse_enum(enum_cls: Type[E], value: Any, field_name: str) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidArgumentException(
            message=f"Unknown {field_name}",
            details={field_name: value, "allowed": [member.value for member in enum_cls]}
        )
