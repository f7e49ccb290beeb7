# app/exceptions.py
"""
Ошибки предметной области.

Каждая ошибка знает свой код (ErrorCode) и HTTP-статус.
API превращает их в JSON {"code": ..., "message": ...},
бот в локализованное сообщение.
"""

from enum import IntEnum


class ErrorCode(IntEnum):
    GENERAL_ERROR = -1
    USER_NOT_FOUND = -2
    DUPLICATE_RESOURCE = -3
    FORBIDDEN = -4
    INVALID_INPUT = -5
    RESOURCE_NOT_FOUND = -7
    VALIDATION_ERROR = -8


class RestoranProError(Exception):
    """Базовая ошибка приложения."""

    code = ErrorCode.GENERAL_ERROR
    status_code = 500

    def __init__(self, message: str = "Internal error"):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"code": int(self.code), "message": self.message}


class DuplicateResourceError(RestoranProError):
    code = ErrorCode.DUPLICATE_RESOURCE
    status_code = 409


class ForbiddenError(RestoranProError):
    code = ErrorCode.FORBIDDEN
    status_code = 403


class InvalidInputError(RestoranProError):
    code = ErrorCode.INVALID_INPUT
    status_code = 400


class UserNotFoundError(RestoranProError):
    code = ErrorCode.USER_NOT_FOUND
    status_code = 404


class ResourceNotFoundError(RestoranProError):
    code = ErrorCode.RESOURCE_NOT_FOUND
    status_code = 404


class BusinessValidationError(RestoranProError):
    """Нарушено бизнес-правило (лимит OTP, недопустимый переход статуса)."""
    code = ErrorCode.VALIDATION_ERROR
    status_code = 422
