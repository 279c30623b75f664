"""FastAPI endpoints for auth, profile and ECG results."""

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

import structlog
from fastapi import APIRouter, FastAPI, status

from heartbeat import services
from heartbeat.config import API_VERSION
from heartbeat.errors import AppError
from heartbeat.models import (
    ApiTestResponse,
    DeleteHistoryResponse,
    DeleteRecordResponse,
    EcgHistoryResponse,
    EcgResultRead,
    EcgSaveRequest,
    EcgSaveResponse,
    ErrorResponse,
    HealthResponse,
    LoginRequest,
    LoginResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    RegisterRequest,
    RegisterResponse,
    UserPublic,
    UserRecord,
    UsersResponse,
    UserSummary,
)
from heartbeat.storage import DatabaseStorage

logger = structlog.get_logger(__name__)

router = APIRouter()
storage = DatabaseStorage()

STARTED_AT = time.monotonic()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Missing or malformed input"},
    404: {"model": ErrorResponse, "description": "User or record not found"},
    500: {"model": ErrorResponse, "description": "Database unavailable"},
}


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for startup and shutdown."""
    # Startup
    logger.info("startup", database_configured=storage.configured)
    storage.start()
    yield
    # Shutdown
    storage.stop()
    logger.info("shutdown")


@router.get("/health", response_model=HealthResponse, summary="Health check endpoint")
def health_check() -> HealthResponse:
    """Process liveness plus an on-demand database connectivity check."""
    return HealthResponse(
        status="OK",
        uptime=round(time.monotonic() - STARTED_AT, 3),
        timestamp=_utc_now_iso(),
        database=storage.health(),
    )


@router.get("/api/test", response_model=ApiTestResponse, summary="Liveness check")
def api_test() -> ApiTestResponse:
    return ApiTestResponse(
        message="ECG Heartbeat Backend API is working!",
        timestamp=_utc_now_iso(),
        version=API_VERSION,
        database=storage.health(),
    )


@router.post(
    "/api/auth/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    summary="Register a user",
)
def register(payload: RegisterRequest) -> RegisterResponse:
    """
    Create a user account.

    All of username, password, age and gender are required. The username
    must not already be in use.
    """
    with storage.session() as db:
        user = services.register_user(db, payload)
        return RegisterResponse(
            message="User registered successfully",
            user=UserSummary.model_validate(user),
        )


@router.post(
    "/api/auth/login",
    response_model=LoginResponse,
    responses={**ERROR_RESPONSES, 401: {"model": ErrorResponse}},
    summary="Log in",
)
def login(payload: LoginRequest) -> LoginResponse:
    """Check credentials and issue an opaque session token."""
    with storage.session() as db:
        token, user = services.login_user(db, payload)
        return LoginResponse(
            message="Login successful",
            token=token,
            user=UserSummary.model_validate(user),
        )


@router.get(
    "/api/users/all",
    response_model=UsersResponse,
    responses=ERROR_RESPONSES,
    summary="List all users",
)
def list_users() -> UsersResponse:
    """List every user, newest first. The stored password is included."""
    try:
        with storage.session() as db:
            users = [UserRecord.model_validate(u) for u in services.list_users(db)]
    except AppError as e:
        e.extra = {"users": [], "count": 0}
        raise
    return UsersResponse(
        message="Users retrieved successfully", users=users, count=len(users)
    )


@router.get(
    "/api/profile/{user_id}",
    response_model=ProfileResponse,
    responses=ERROR_RESPONSES,
    summary="Get a user profile",
)
def get_profile(user_id: str) -> ProfileResponse:
    with storage.session() as db:
        user = services.get_profile(db, user_id)
        return ProfileResponse(
            message="Profile retrieved successfully", user=UserPublic.model_validate(user)
        )


@router.put(
    "/api/profile/update",
    response_model=ProfileResponse,
    responses=ERROR_RESPONSES,
    summary="Update a user profile",
)
def update_profile(payload: ProfileUpdateRequest) -> ProfileResponse:
    """
    Update username, age and gender, and optionally change the password.

    To change the password send ``oldPassword`` and ``newPassword``; the old
    one must match what is stored.
    """
    with storage.session() as db:
        user = services.update_profile(db, payload)
        return ProfileResponse(
            message="Profile updated successfully", user=UserPublic.model_validate(user)
        )


@router.post(
    "/api/ecg/save",
    response_model=EcgSaveResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    summary="Save an ECG result",
)
def save_ecg_result(payload: EcgSaveRequest) -> EcgSaveResponse:
    """
    Record a heart rate reading.

    The server stamps the reading with today's date and the current time and
    classifies the BPM value as Normal (60-100 inclusive) or Abnormal.
    """
    with storage.session() as db:
        record = services.save_ecg_result(db, payload)
        return EcgSaveResponse(
            message="ECG result saved successfully",
            result=EcgResultRead.model_validate(record),
        )


@router.get(
    "/api/ecg/history/{user_id}",
    response_model=EcgHistoryResponse,
    responses=ERROR_RESPONSES,
    summary="Get ECG history",
)
def get_ecg_history(user_id: str) -> EcgHistoryResponse:
    """Readings for a user, most recent first. An empty history is not an error."""
    with storage.session() as db:
        records = [EcgResultRead.model_validate(r) for r in services.get_ecg_history(db, user_id)]
    return EcgHistoryResponse(
        message="ECG history retrieved successfully", data=records, count=len(records)
    )


@router.delete(
    "/api/ecg/history/{user_id}",
    response_model=DeleteHistoryResponse,
    responses=ERROR_RESPONSES,
    summary="Delete all ECG history for a user",
)
def delete_ecg_history(user_id: str) -> DeleteHistoryResponse:
    with storage.session() as db:
        deleted, previous = services.delete_ecg_history(db, user_id)
    return DeleteHistoryResponse(
        message=f"Deleted {deleted} ECG record(s)",
        deleted_count=deleted,
        previous_count=previous,
    )


@router.delete(
    "/api/ecg/history/{user_id}/{record_id}",
    response_model=DeleteRecordResponse,
    responses=ERROR_RESPONSES,
    summary="Delete one ECG record",
)
def delete_ecg_result(user_id: str, record_id: str) -> DeleteRecordResponse:
    """Delete a single reading. The record must belong to the given user."""
    with storage.session() as db:
        deleted_id = services.delete_ecg_result(db, user_id, record_id)
    return DeleteRecordResponse(
        message="ECG record deleted successfully", deleted_record_id=deleted_id
    )
