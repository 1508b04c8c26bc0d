"""
tasks/session_tasks.py
Celery tasks for admin session housekeeping.

All tasks are idempotent: running twice has no further effect.
"""

import logging
from datetime import datetime, timezone
from functools import lru_cache

from sqlalchemy import create_engine, delete
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from config.settings import settings
from tasks.celery_app import celery_app

logger = logging.getLogger(__name__)

SYNC_DRIVERS = {"asyncpg": "psycopg2", "aiosqlite": "pysqlite"}


# ── Helpers ────────────────────────────────────────────────────────────────────

def sync_database_url(async_url: str) -> str:
    """The same database through a blocking driver (Celery runs sync by default)."""
    url = make_url(async_url)
    driver = SYNC_DRIVERS.get(url.get_driver_name())
    if driver:
        url = url.set(drivername=f"{url.get_backend_name()}+{driver}")
    return url.render_as_string(hide_password=False)


@lru_cache()
def _session_factory(database_url: str) -> sessionmaker:
    engine = create_engine(sync_database_url(database_url), pool_pre_ping=True)
    return sessionmaker(bind=engine)


def _get_sync_session():
    return _session_factory(settings.DATABASE_URL)()


# ── Tasks ──────────────────────────────────────────────────────────────────────

@celery_app.task(bind=True, max_retries=3, default_retry_delay=60)
def purge_expired_admin_sessions(self) -> int:
    """
    Delete every AdminSession whose expires_at has passed.
    Returns the number of sessions removed.
    """
    from shared.models.models import AdminSession

    db = _get_sync_session()
    try:
        result = db.execute(
            delete(AdminSession).where(AdminSession.expires_at <= datetime.now(timezone.utc))
        )
        db.commit()
        removed = result.rowcount or 0
        logger.info(f"Purged {removed} expired admin sessions")
        return removed
    except Exception as exc:
        db.rollback()
        logger.error(f"Session purge failed: {exc}")
        raise self.retry(exc=exc)
    finally:
        db.close()
