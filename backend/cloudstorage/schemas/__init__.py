"""Convenience exports for request/response schemas."""

from __future__ import annotations

from .auth import (
    ChangePasswordSchema,
    ForgotPasswordSchema,
    LoginSchema,
    RefreshSchema,
    RegisterSchema,
    ResetPasswordSchema,
    TokenPairSchema,
    VerifyEmailSchema,
)
from .common import JSONList, build_pagination
from .file import (
    FileListQuerySchema,
    FileSchema,
    FileUpdateSchema,
    FileUploadFormSchema,
    ShareCreateSchema,
    ShareSchema,
)
from .user import PreferencesSchema, ProfileUpdateSchema, UserSchema

__all__ = [
    "ChangePasswordSchema",
    "ForgotPasswordSchema",
    "LoginSchema",
    "RefreshSchema",
    "RegisterSchema",
    "ResetPasswordSchema",
    "TokenPairSchema",
    "VerifyEmailSchema",
    "JSONList",
    "build_pagination",
    "FileListQuerySchema",
    "FileSchema",
    "FileUpdateSchema",
    "FileUploadFormSchema",
    "ShareCreateSchema",
    "ShareSchema",
    "PreferencesSchema",
    "ProfileUpdateSchema",
    "UserSchema",
]
