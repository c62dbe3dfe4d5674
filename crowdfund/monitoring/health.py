"""
Health checks backing the /health endpoints.

Readiness covers the database and the upload directory. Midtrans is not
checked: it has no cheap unauthenticated ping, and an outage there only
affects the payment routes.
"""
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from crowdfund.config import get_settings
from crowdfund.database.connection import session_scope

logger = structlog.get_logger(__name__)


class HealthCheckError(Exception):
    """Raised when a dependency check fails."""

    pass


class HealthCheck:
    """Runs dependency checks and folds them into one health response."""

    def __init__(self, upload_dir: Optional[str] = None) -> None:
        self._upload_dir = upload_dir

    @property
    def upload_dir(self) -> Path:
        return Path(self._upload_dir or get_settings().upload_dir)

    async def check_database(self) -> Dict[str, Any]:
        """
        Run ``SELECT 1`` on a fresh session.

        Raises:
            HealthCheckError: If the database cannot be queried
        """
        try:
            async with session_scope() as db:
                await db.scalar(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            logger.error("database_health_check_failed", error=str(e))
            raise HealthCheckError(f"Database health check failed: {str(e)}") from e

        return {"status": "healthy", "service": "database"}

    async def check_upload_dir(self) -> Dict[str, Any]:
        """
        Uploaded avatars and campaign images land here; it must be writable
        (or creatable) by the API process.

        Raises:
            HealthCheckError: If the directory is missing and cannot be created,
                or is not writable
        """
        path = self.upload_dir
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("upload_dir_health_check_failed", path=str(path), error=str(e))
            raise HealthCheckError(f"Upload directory unavailable: {str(e)}") from e

        if not os.access(path, os.W_OK):
            logger.error("upload_dir_not_writable", path=str(path))
            raise HealthCheckError(f"Upload directory not writable: {path}")

        return {"status": "healthy", "service": "uploads", "path": path.as_posix()}

    async def check_all(self) -> Dict[str, Any]:
        checks: Dict[str, Dict[str, Any]] = {}
        runners: Dict[str, Callable[[], Any]] = {
            "database": self.check_database,
            "uploads": self.check_upload_dir,
        }

        for name, run_check in runners.items():
            try:
                checks[name] = await run_check()
            except HealthCheckError as e:
                checks[name] = {"status": "unhealthy", "service": name, "error": str(e)}

        all_healthy = all(check["status"] == "healthy" for check in checks.values())
        return {
            "status": "healthy" if all_healthy else "unhealthy",
            "checks": checks,
        }

    async def liveness(self) -> Dict[str, Any]:
        """Process is up; no dependency checks."""
        return {"status": "alive", "message": "Application is running"}

    async def readiness(self) -> Dict[str, Any]:
        return await self.check_all()
