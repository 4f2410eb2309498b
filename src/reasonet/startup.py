"""
Startup dependency checks for the Reasonet service.

Validates critical dependencies before the application starts serving
webhooks. Fails fast with clear, actionable error messages when
requirements aren't met.
"""

import logging
import sys
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from alembic.config import Config as AlembicConfig
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import text

from reasonet.config import settings
from reasonet.db.connection import SessionLocal, engine

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class StartupMetrics:
    """Metrics collected during startup checks."""

    started_at: datetime
    completed_at: Optional[datetime] = None
    total_duration_ms: Optional[float] = None
    database_check_ms: Optional[float] = None
    migrations_check_ms: Optional[float] = None
    github_check_ms: Optional[float] = None
    analyzers_check_ms: Optional[float] = None
    checks_passed: bool = False
    last_check_time: Optional[datetime] = None


# Global startup metrics (populated during startup)
startup_metrics = StartupMetrics(started_at=_utc_now())


class StartupCheckError(Exception):
    """Raised when a critical startup check fails."""

    def __init__(self, message: str, hint: Optional[str] = None):
        self.message = message
        self.hint = hint
        super().__init__(message)

    def __str__(self) -> str:
        error_msg = f"\n{'='*70}\n❌ STARTUP CHECK FAILED\n{'='*70}\n\n{self.message}\n"
        if self.hint:
            error_msg += f"\n💡 Hint: {self.hint}\n"
        error_msg += f"{'='*70}\n"
        return error_msg


def _using_sqlite() -> bool:
    return settings.database_url.startswith("sqlite")


def check_database_connection() -> None:
    """
    Verify the database is accessible and responsive.

    Raises:
        StartupCheckError: If database connection fails
    """
    try:
        with SessionLocal() as session:
            result = session.execute(text("SELECT 1")).scalar()
            if result != 1:
                raise StartupCheckError(
                    "Database query returned unexpected result",
                    "Database may be corrupted or misconfigured",
                )
    except StartupCheckError:
        raise
    except Exception as e:
        error_str = str(e).lower()

        if "could not connect" in error_str or "connection refused" in error_str:
            hint = (
                "PostgreSQL is not running.\n"
                "  - Start with Docker: docker-compose up -d"
            )
        elif "authentication failed" in error_str or "password" in error_str:
            hint = (
                "Database authentication failed.\n"
                "  - Check credentials in .env file\n"
                f"  - Current user: {settings.postgres_user}\n"
                f"  - Current database: {settings.postgres_db}"
            )
        elif "database" in error_str and "does not exist" in error_str:
            hint = (
                f"Database '{settings.postgres_db}' does not exist.\n"
                f"  - Create it: createdb {settings.postgres_db}\n"
                "  - Then run migrations: alembic upgrade head"
            )
        elif "timeout" in error_str or "timed out" in error_str:
            hint = (
                "Database connection timed out.\n"
                "  - Check if PostgreSQL is running\n"
                f"  - Current host: {settings.postgres_host}:{settings.postgres_port}"
            )
        else:
            hint = f"Check your database configuration in .env\nError: {str(e)}"

        raise StartupCheckError(
            f"Cannot connect to database\n"
            f"Host: {settings.postgres_host}:{settings.postgres_port}\n"
            f"Database: {settings.postgres_db}\n"
            f"User: {settings.postgres_user}",
            hint,
        ) from e


def check_database_migrations() -> None:
    """
    Verify Alembic database migrations are current.

    SQLite databases are created from the models directly and are skipped.

    Raises:
        StartupCheckError: If pending migrations exist
    """
    if _using_sqlite():
        return

    try:
        alembic_cfg = AlembicConfig("alembic.ini")
        script = ScriptDirectory.from_config(alembic_cfg)
        head_revision = script.get_current_head()

        with engine.connect() as connection:
            context = MigrationContext.configure(connection)
            current_revision = context.get_current_revision()

        if current_revision is None:
            raise StartupCheckError(
                "Database has no migration version\nDatabase appears uninitialized",
                "Run migrations: alembic upgrade head",
            )

        if current_revision != head_revision:
            raise StartupCheckError(
                f"Database migrations are out of date\n"
                f"Current revision: {current_revision}\n"
                f"Expected revision: {head_revision}",
                "Run: alembic upgrade head",
            )

    except StartupCheckError:
        raise
    except FileNotFoundError:
        raise StartupCheckError(
            "Alembic configuration not found",
            "Ensure alembic.ini exists in the project root",
        )
    except Exception as e:
        raise StartupCheckError(
            f"Failed to check migration status: {str(e)}",
            "Verify Alembic is properly configured",
        ) from e


def check_github_configuration() -> None:
    """
    Validate GitHub credentials.

    A missing webhook secret rejects every delivery, so it is fatal in
    production. Missing API credentials only fail individual analyses and
    are reported as warnings.

    Raises:
        StartupCheckError: If the webhook secret is missing in production
    """
    if not settings.github_webhook_secret:
        if settings.environment == "production":
            raise StartupCheckError(
                "GITHUB_WEBHOOK_SECRET is not set; every delivery would be rejected",
                "Set GITHUB_WEBHOOK_SECRET to the secret configured on the GitHub App",
            )
        logger.warning("GITHUB_WEBHOOK_SECRET is not set; all deliveries will get 401")

    if settings.github_app_id and not settings.github_app_private_key:
        logger.warning("GITHUB_APP_ID is set without GITHUB_APP_PRIVATE_KEY")

    if not settings.github_app_configured and not settings.github_token:
        logger.warning(
            "No GitHub API credentials configured; analyses will fail with "
            "AuthenticationUnavailable"
        )


def check_analyzers() -> None:
    """
    Verify the configured analysis collaborators can be loaded.

    Raises:
        StartupCheckError: If a collaborator cannot be imported
    """
    from reasonet.analyzers.loader import load_analyzers
    from reasonet.exceptions import AnalyzerLoadError

    try:
        load_analyzers(settings)
    except AnalyzerLoadError as e:
        raise StartupCheckError(
            f"Cannot load analysis collaborators: {e}",
            "Check QUALITY_ANALYZER, SECURITY_ANALYZER and GIST_GENERATOR "
            "('module:attribute' paths)",
        ) from e


def run_all_startup_checks() -> None:
    """
    Execute all startup dependency checks.

    Runs checks in order of dependency:
    1. Database connection
    2. Database migrations
    3. GitHub configuration
    4. Analysis collaborators

    Raises:
        SystemExit: After printing the failed check
    """
    global startup_metrics
    startup_start = time.time()

    checks = [
        ("Database Connection", check_database_connection, "database_check_ms"),
        ("Database Migrations", check_database_migrations, "migrations_check_ms"),
        ("GitHub Configuration", check_github_configuration, "github_check_ms"),
        ("Analysis Collaborators", check_analyzers, "analyzers_check_ms"),
    ]

    print("\n" + "=" * 70)
    print("🚀 Starting Reasonet - Running Startup Checks")
    print("=" * 70 + "\n")

    for check_name, check_func, metric_name in checks:
        check_start = time.time()
        try:
            print(f"  Checking {check_name}...", end=" ", flush=True)
            check_func()
            check_duration = (time.time() - check_start) * 1000
            setattr(startup_metrics, metric_name, check_duration)
            print(f"✅ PASS ({check_duration:.1f}ms)")
        except StartupCheckError as e:
            check_duration = (time.time() - check_start) * 1000
            setattr(startup_metrics, metric_name, check_duration)
            print(f"❌ FAIL ({check_duration:.1f}ms)")
            print(str(e))
            sys.exit(1)

    startup_metrics.completed_at = _utc_now()
    startup_metrics.total_duration_ms = (time.time() - startup_start) * 1000
    startup_metrics.checks_passed = True
    startup_metrics.last_check_time = _utc_now()

    print("\n" + "=" * 70)
    print(
        f"✅ All startup checks passed - Server is ready ({startup_metrics.total_duration_ms:.1f}ms)"
    )
    print("=" * 70 + "\n")


def check_readiness() -> tuple[bool, dict]:
    """
    Quick readiness check for load balancers.

    Returns:
        tuple: (is_ready, details) where details contains the database
        status, whether startup completed, uptime and startup timings
    """
    db_ready = False
    try:
        with SessionLocal() as session:
            session.execute(text("SELECT 1"))
            db_ready = True
    except Exception as e:
        logger.warning(f"Readiness database ping failed: {e}")

    uptime = (_utc_now() - startup_metrics.started_at).total_seconds()
    ready = startup_metrics.checks_passed and db_ready
    details = {
        "ready": ready,
        "database": "healthy" if db_ready else "unhealthy",
        "startup_completed": startup_metrics.checks_passed,
        "uptime_seconds": uptime,
        "startup_metrics": {
            "total_duration_ms": startup_metrics.total_duration_ms,
            "database_check_ms": startup_metrics.database_check_ms,
            "migrations_check_ms": startup_metrics.migrations_check_ms,
            "github_check_ms": startup_metrics.github_check_ms,
            "analyzers_check_ms": startup_metrics.analyzers_check_ms,
            "started_at": startup_metrics.started_at.isoformat(),
            "completed_at": (
                startup_metrics.completed_at.isoformat()
                if startup_metrics.completed_at
                else None
            ),
        },
    }
    return ready, details
