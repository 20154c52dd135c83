"""Core infrastructure: settings, logging, exceptions, classification."""

from .config import settings
from .exceptions import (
    AppException,
    BadRequestError,
    ComputationFailedError,
    DataUnavailableError,
    InsufficientDataError,
    NotFoundError,
    StoreError,
    UnknownAnalogError,
)


__all__ = [
    "AppException",
    "BadRequestError",
    "ComputationFailedError",
    "DataUnavailableError",
    "InsufficientDataError",
    "NotFoundError",
    "StoreError",
    "UnknownAnalogError",
    "settings",
]
