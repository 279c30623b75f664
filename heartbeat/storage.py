"""Persistence gateway over the relational store."""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

import structlog
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import (
    ArgumentError,
    InterfaceError,
    NoSuchModuleError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker

from heartbeat.config import (
    DATABASE_URL,
    IS_PRODUCTION,
    POOL_SIZE,
    POOL_TIMEOUT_SECONDS,
    QUERY_TIMEOUT_SECONDS,
)
from heartbeat.errors import StorageUnavailableError
from heartbeat.tables import Base

logger = structlog.get_logger(__name__)

STATUS_CONNECTED = "connected"
STATUS_UNREACHABLE = "configured but not connected"
STATUS_NOT_CONFIGURED = "not configured"


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class DatabaseStorage:
    """Owns the connection pool and hands out one session per unit of work.

    Construction never raises: a missing or unusable URL leaves the gateway
    unconfigured, and every :meth:`session` call then fails with
    :class:`StorageUnavailableError`.
    """

    def __init__(self, url: Optional[str] = DATABASE_URL) -> None:
        """Initialize the gateway; the pool connects lazily."""
        self.engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

        if not url:
            logger.warning("database_not_configured")
            return

        try:
            self.engine = self._create_engine(url)
        except (ArgumentError, NoSuchModuleError, ImportError) as e:
            logger.error("database_engine_creation_failed", error=str(e))
            self.engine = None
            return

        self._session_factory = sessionmaker(
            bind=self.engine, autocommit=False, autoflush=False, expire_on_commit=False
        )
        logger.info("database_configured", backend=self.engine.url.get_backend_name())

    @staticmethod
    def _create_engine(url: str) -> Engine:
        """Build an engine with bounded connection and query waits."""
        parsed = make_url(url)
        backend = parsed.get_backend_name()
        kwargs: Dict[str, Any] = {"pool_pre_ping": True}
        connect_args: Dict[str, Any] = {}

        if backend == "sqlite":
            connect_args["check_same_thread"] = False
            connect_args["timeout"] = QUERY_TIMEOUT_SECONDS
        else:
            kwargs["pool_size"] = POOL_SIZE
            kwargs["pool_timeout"] = POOL_TIMEOUT_SECONDS
            if backend == "postgresql":
                connect_args["connect_timeout"] = POOL_TIMEOUT_SECONDS
                connect_args["options"] = (
                    f"-c statement_timeout={QUERY_TIMEOUT_SECONDS * 1000}"
                )
                if IS_PRODUCTION:
                    connect_args["sslmode"] = "require"

        engine = create_engine(parsed, connect_args=connect_args, **kwargs)
        if backend == "sqlite":
            event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    @property
    def configured(self) -> bool:
        return self._session_factory is not None

    def start(self) -> None:
        """Create missing tables. Connectivity failures are logged, not raised."""
        if self.engine is None:
            return
        try:
            Base.metadata.create_all(bind=self.engine)
            logger.info("database_schema_ready")
        except SQLAlchemyError as e:
            logger.error("database_schema_setup_failed", error=str(e))

    def stop(self) -> None:
        """Release every pooled connection."""
        if self.engine is not None:
            self.engine.dispose()

    @contextmanager
    def session(self) -> Iterator[Session]:
        """
        Scoped session for one request.

        Commits when the block exits normally, rolls back when it raises, and
        closes the session (returning its connection to the pool) either way.
        Connectivity failures surface as StorageUnavailableError.
        """
        if self._session_factory is None:
            raise StorageUnavailableError("Database not configured")

        db = self._session_factory()
        try:
            yield db
            db.commit()
        except (OperationalError, InterfaceError, PoolTimeoutError) as e:
            db.rollback()
            logger.error("database_unavailable", error=str(e))
            raise StorageUnavailableError("Database unavailable", debug=str(e)) from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def health(self) -> str:
        """Acquire and release one connection to report store connectivity."""
        if self.engine is None:
            return STATUS_NOT_CONFIGURED
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return STATUS_CONNECTED
        except SQLAlchemyError as e:
            logger.warning("database_health_check_failed", error=str(e))
            return STATUS_UNREACHABLE
