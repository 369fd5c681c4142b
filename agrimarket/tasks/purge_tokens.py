# agrimarket/tasks/purge_tokens.py
from agrimarket.celery_worker import celery_app
from agrimarket.data.database import SessionLocal
from agrimarket.services.refresh_token_service import RefreshTokenService
from agrimarket.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="agrimarket.tasks.purge_tokens.purge_expired_refresh_tokens_task")
def purge_expired_refresh_tokens_task():
    logger.info("Purge expired refresh tokens task started")

    db = SessionLocal()
    try:
        removed = RefreshTokenService(db).purge_expired()
        logger.info(f"Removed {removed} expired refresh tokens")
        return removed
    finally:
        db.close()
