"""Core module - config and exceptions."""

from app.core.config import get_settings, Settings
from app.core.exceptions import (
    AppException,
    NotFoundException,
    BadRequestException,
)

__all__ = [
    "get_settings",
    "Settings",
    "AppException",
    "NotFoundException",
    "BadRequestException",
]
