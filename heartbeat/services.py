"""Domain handlers for auth, profile and ECG result operations.

Each handler takes an open session from :meth:`DatabaseStorage.session` and
raises an :class:`~heartbeat.errors.AppError` subclass for every failure it
can classify. Transactions are committed by the caller's session scope.
"""

import re
from datetime import datetime
from typing import List, Optional, Tuple, Union

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from heartbeat.classification import classify
from heartbeat.config import MAX_DB_INTEGER
from heartbeat.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from heartbeat.models import (
    EcgSaveRequest,
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
)
from heartbeat.tables import EcgResult, User

logger = structlog.get_logger(__name__)

_ID_PATTERN = re.compile(r"-?[0-9]+", re.ASCII)


def now() -> datetime:
    """Current local wall-clock time. Patched in tests."""
    return datetime.now()


def parse_id(value: Union[str, int], message: str) -> int:
    """Parse a path identifier.

    Only optionally signed ASCII digits are accepted, and the result must fit
    the store's INTEGER column.
    """
    if isinstance(value, int):
        parsed = value
    else:
        if not _ID_PATTERN.fullmatch(value.strip()):
            raise ValidationError(message)
        parsed = int(value)
    if not -MAX_DB_INTEGER - 1 <= parsed <= MAX_DB_INTEGER:
        raise ValidationError(message)
    return parsed


def _require_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def _username_taken(db: Session, username: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(User.id).where(User.username == username)
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    return db.scalar(stmt) is not None


def _flush_unique(db: Session) -> None:
    """Flush pending writes, treating a unique violation as a username conflict.

    The pre-check in the callers can race with a concurrent writer; the
    unique constraint on ``users.username`` is what actually decides.
    """
    try:
        db.flush()
    except IntegrityError as e:
        db.rollback()
        raise ConflictError("Username already taken") from e


# Auth


def register_user(db: Session, payload: RegisterRequest) -> User:
    if not (payload.username and payload.password and payload.age and payload.gender):
        raise ValidationError("All fields are required")

    if _username_taken(db, payload.username):
        raise ConflictError("Username already taken")

    timestamp = now()
    user = User(
        username=payload.username,
        password=payload.password,
        age=payload.age,
        gender=payload.gender,
        created_at=timestamp,
        updated_at=timestamp,
    )
    db.add(user)
    _flush_unique(db)
    logger.info("user_registered", user_id=user.id)
    return user


def issue_token(user: User) -> str:
    """Opaque session string built from the user id and issue time.

    Nothing downstream verifies it.
    """
    return f"token_{user.id}_{int(now().timestamp() * 1000)}"


def login_user(db: Session, payload: LoginRequest) -> Tuple[str, User]:
    """Return ``(token, user)`` for matching credentials."""
    if not (payload.username and payload.password):
        raise ValidationError("Username and password are required")

    # Plain equality on the stored password; there is no hashing.
    user = db.scalar(
        select(User).where(
            User.username == payload.username, User.password == payload.password
        )
    )
    if user is None:
        raise AuthenticationError("Invalid username or password")

    logger.info("user_logged_in", user_id=user.id)
    return issue_token(user), user


# Users and profile


def list_users(db: Session) -> List[User]:
    return list(db.scalars(select(User).order_by(User.created_at.desc(), User.id.desc())))


def get_profile(db: Session, user_id: Union[str, int]) -> User:
    return _require_user(db, parse_id(user_id, "Invalid user ID"))


def update_profile(db: Session, payload: ProfileUpdateRequest) -> User:
    """
    Update username, age, gender and optionally the password.

    A password change through ``oldPassword``/``newPassword`` requires the old
    password to match the stored one. A bare ``password`` replaces it outright.
    """
    if not (payload.user_id and payload.username and payload.age and payload.gender):
        raise ValidationError("User ID, username, age, and gender are required")

    user = _require_user(db, payload.user_id)

    new_password: Optional[str] = None
    if payload.new_password is not None or payload.old_password is not None:
        if not (payload.old_password and payload.new_password):
            raise ValidationError("Both old and new password are required to change password")
        if payload.old_password != user.password:
            raise ValidationError("Old password is incorrect")
        new_password = payload.new_password
    elif payload.password:
        new_password = payload.password

    if _username_taken(db, payload.username, exclude_id=user.id):
        raise ConflictError("Username already taken")

    user.username = payload.username
    user.age = payload.age
    user.gender = payload.gender
    if new_password is not None:
        user.password = new_password
    user.updated_at = now()
    _flush_unique(db)

    logger.info("profile_updated", user_id=user.id, password_changed=new_password is not None)
    return user


# ECG results


def save_ecg_result(db: Session, payload: EcgSaveRequest) -> EcgResult:
    """Classify and store a reading stamped with the current date and time."""
    if not (payload.user_id and payload.username and payload.bpm):
        raise ValidationError("User ID, username, and BPM are required")
    if payload.bpm < 0:
        raise ValidationError("BPM must be a positive integer")

    result = classify(payload.bpm)
    recorded_at = now().replace(microsecond=0)
    record = EcgResult(
        user_id=payload.user_id,
        username=payload.username,
        tanggal=recorded_at.date(),
        waktu=recorded_at.time(),
        bpm=payload.bpm,
        status=result.status,
        kondisi=result.kondisi,
    )
    db.add(record)
    try:
        db.flush()
    except IntegrityError as e:
        db.rollback()
        raise NotFoundError("User not found") from e

    logger.info(
        "ecg_result_saved",
        user_id=record.user_id,
        record_id=record.id,
        bpm=record.bpm,
        status=record.status,
    )
    return record


def get_ecg_history(db: Session, user_id: Union[str, int]) -> List[EcgResult]:
    """All readings for a user, newest date first and then latest time first."""
    uid = parse_id(user_id, "Invalid user ID")
    stmt = (
        select(EcgResult)
        .where(EcgResult.user_id == uid)
        .order_by(EcgResult.tanggal.desc(), EcgResult.waktu.desc())
    )
    return list(db.scalars(stmt))


def delete_ecg_history(db: Session, user_id: Union[str, int]) -> Tuple[int, int]:
    """Delete every reading a user owns. Returns ``(deleted, previous)`` counts."""
    uid = parse_id(user_id, "Invalid user ID")
    _require_user(db, uid)

    previous = db.scalar(
        select(func.count()).select_from(EcgResult).where(EcgResult.user_id == uid)
    ) or 0
    deleted = db.execute(delete(EcgResult).where(EcgResult.user_id == uid)).rowcount

    logger.info("ecg_history_deleted", user_id=uid, deleted=deleted, previous=previous)
    return deleted, previous


def delete_ecg_result(db: Session, user_id: Union[str, int], record_id: Union[str, int]) -> int:
    """Delete one reading, which must belong to the given user."""
    uid = parse_id(user_id, "Invalid user ID")
    rid = parse_id(record_id, "Invalid record ID")

    record = db.scalar(
        select(EcgResult).where(EcgResult.id == rid, EcgResult.user_id == uid)
    )
    if record is None:
        raise NotFoundError("ECG record not found")

    db.delete(record)
    db.flush()
    logger.info("ecg_result_deleted", user_id=uid, record_id=rid)
    return rid