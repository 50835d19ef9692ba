"""
API middleware module.
"""
from hellofixo.api.middleware.error_handler import (
    AppException,
    NotFoundException,
    ForbiddenException,
    BadRequestException,
    ConflictException,
    LocationDialogException,
    ValidationException,
    UpstreamServiceException,
    upstream_exception,
    app_exception_handler,
    upstream_error_handler,
    validation_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
)

__all__ = [
    "AppException",
    "NotFoundException",
    "ForbiddenException",
    "BadRequestException",
    "ConflictException",
    "LocationDialogException",
    "ValidationException",
    "UpstreamServiceException",
    "upstream_exception",
    "app_exception_handler",
    "upstream_error_handler",
    "validation_exception_handler",
    "http_exception_handler",
    "unhandled_exception_handler",
]
