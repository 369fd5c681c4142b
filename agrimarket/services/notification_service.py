# agrimarket/services/notification_service.py
from kombu.exceptions import OperationalError

from agrimarket.celery_worker import celery_app
from agrimarket.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Sends order notifications to buyers.
    Uses Celery for asynchronous processing.
    """

    @staticmethod
    def send_order_notification(user_id: int, order_id: str, event: str):
        # the order is already committed, a broker outage must not fail the request
        try:
            send_order_notification_task.delay(user_id, order_id, event)
        except OperationalError as e:
            logger.error(f"Could not queue {event} notification for order {order_id}: {e}")


@celery_app.task(name="agrimarket.services.notification_service.send_order_notification_task")
def send_order_notification_task(user_id: int, order_id: str, event: str):
    """
    Celery task - a real deployment would send email/SMS here.
    For now it only logs.
    """
    logger.info(f"[NOTIFICATION] User {user_id}: {event} for order {order_id}")

    return {"user_id": user_id, "order_id": order_id, "event": event, "status": "sent"}
