# app/exceptions/__init__.py

from exceptions.domain_exceptions import (
    DomainException,
    InvalidArgumentException,
    UnauthorizedException,
    ForbiddenException,
    NotFoundException,
    InvalidStateTransitionException,
    StorageUnavailableException
)

__all__ = [
    'DomainException',
    'InvalidArgumentException',
    'UnauthorizedException',
    'ForbiddenException',
    'NotFoundException',
    'InvalidStateTransitionException',
    'StorageUnavailableException'
]
