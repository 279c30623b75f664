"""Pydantic models for request and response validation."""

from datetime import date, datetime, time
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from heartbeat.config import MAX_DB_INTEGER

DB_INT_MIN = -MAX_DB_INTEGER - 1


class _RequestModel(BaseModel):
    """Request bodies accept both camelCase wire names and field names."""

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        """Treat empty and whitespace-only strings as absent so handlers report them as missing."""
        if isinstance(v, str) and v.strip() == "":
            return None
        return v


class RegisterRequest(_RequestModel):
    """Request model for user registration."""

    username: Optional[str] = Field(None, description="Unique username")
    password: Optional[str] = Field(None, description="Password, stored as given")
    age: Optional[int] = Field(None, ge=0, le=MAX_DB_INTEGER, description="Age in years")
    gender: Optional[str] = Field(None, description="Gender")


class LoginRequest(_RequestModel):
    username: Optional[str] = None
    password: Optional[str] = None


class ProfileUpdateRequest(_RequestModel):
    """Request model for profile updates.

    A password change is either a plain ``password`` replacement or an
    ``oldPassword``/``newPassword`` pair, where the old one must match.
    """

    user_id: Optional[int] = Field(None, alias="userId", ge=DB_INT_MIN, le=MAX_DB_INTEGER)
    username: Optional[str] = None
    age: Optional[int] = Field(None, ge=0, le=MAX_DB_INTEGER)
    gender: Optional[str] = None
    password: Optional[str] = None
    old_password: Optional[str] = Field(None, alias="oldPassword")
    new_password: Optional[str] = Field(None, alias="newPassword")


class EcgSaveRequest(_RequestModel):
    """Request model for recording a heart rate reading."""

    user_id: Optional[int] = Field(
        None, alias="userId", ge=DB_INT_MIN, le=MAX_DB_INTEGER, description="Owner user id"
    )
    username: Optional[str] = Field(None, description="Owner username")
    bpm: Optional[int] = Field(None, le=MAX_DB_INTEGER, description="Heart rate in bpm")


class UserSummary(BaseModel):
    """User fields returned on register and login."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    age: int
    gender: str


class UserPublic(UserSummary):
    """Profile fields, password excluded."""

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserRecord(UserPublic):
    """Full user row, as listed by the admin endpoint."""

    password: str


class EcgResultRead(BaseModel):
    """A stored heart rate reading."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    username: str
    tanggal: date = Field(..., description="Date of the reading")
    waktu: time = Field(..., description="Time of day of the reading")
    bpm: int
    status: str
    kondisi: str = Field(..., description="Condition label")


class _Envelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str


class RegisterResponse(_Envelope):
    user: UserSummary


class LoginResponse(_Envelope):
    token: str = Field(..., description="Opaque bearer token")
    user: UserSummary


class UsersResponse(_Envelope):
    users: List[UserRecord]
    count: int


class ProfileResponse(_Envelope):
    user: UserPublic


class EcgSaveResponse(_Envelope):
    result: EcgResultRead


class EcgHistoryResponse(_Envelope):
    """Readings for a user, most recent first."""

    data: List[EcgResultRead]
    count: int


class DeleteHistoryResponse(_Envelope):
    deleted_count: int = Field(..., alias="deletedCount")
    previous_count: int = Field(..., alias="previousCount")


class DeleteRecordResponse(_Envelope):
    deleted_record_id: int = Field(..., alias="deletedRecordId")


class ErrorResponse(BaseModel):
    """Body of every error response."""

    success: bool = False
    message: str
    debug: Optional[str] = None


class HealthResponse(BaseModel):
    status: str = Field(default="OK", description="Process liveness")
    uptime: float = Field(..., description="Seconds since process start")
    timestamp: str
    database: str = Field(..., description="Store connectivity")


class ApiTestResponse(BaseModel):
    message: str
    timestamp: str
    status: str = "success"
    version: str
    database: str
