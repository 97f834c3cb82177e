"""Pydantic schemas for request/response validation."""

from account_service.schemas.account import AccountResponse, UpdateAccountRequest
from account_service.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    GoogleMobileRequest,
    LoginRequest,
    LogoutRequest,
    MessageResponse,
    RefreshTokenRequest,
    RegisterRequest,
    TokenPairResponse,
)
from account_service.schemas.base import APIRequest, APIResponse
from account_service.schemas.health import HealthResponse, ReadinessResponse
from account_service.schemas.root import RootResponse


__all__ = [
    "APIRequest",
    "APIResponse",
    "AccountResponse",
    "AuthResponse",
    "ChangePasswordRequest",
    "GoogleMobileRequest",
    "HealthResponse",
    "LoginRequest",
    "LogoutRequest",
    "MessageResponse",
    "ReadinessResponse",
    "RefreshTokenRequest",
    "RegisterRequest",
    "RootResponse",
    "TokenPairResponse",
    "UpdateAccountRequest",
]
