"""
tasks/celery_app.py
Celery application instance shared by all task modules.

Workers are started with:
    celery -A tasks.celery_app worker --loglevel=info --concurrency=1

Beat scheduler (periodic tasks):
    celery -A tasks.celery_app beat --loglevel=info
"""

from celery import Celery

from config.settings import settings

celery_app = Celery(
    "iftar_calendar",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "tasks.session_tasks",
    ],
)

# ── Configuration ─────────────────────────────────────────────────────────────

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Reliability: acknowledge task AFTER execution, not before
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # Result expiry: keep task results for 1 hour
    result_expires=3600,

    task_routes={
        "tasks.session_tasks.*": {"queue": "maintenance"},
    },

    worker_prefetch_multiplier=1,
)

# ── Periodic Tasks (Beat Schedule) ────────────────────────────────────────────

celery_app.conf.beat_schedule = {
    # Delete admin sessions past their expiry; safe to overlap with anything
    "purge-expired-admin-sessions": {
        "task": "tasks.session_tasks.purge_expired_admin_sessions",
        "schedule": settings.SESSION_SWEEP_INTERVAL_SECONDS,
    },
}
