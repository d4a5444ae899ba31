# cartsync/services/notification_service.py
from cartsync.celery_worker import celery_app
from cartsync.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Powiadomienia o porzuconym koszyku.
    Wysylka idzie przez Celery, koszyk nie czeka na kanal powiadomien.
    """

    @staticmethod
    def send_abandoned_cart_reminder(user_id: str, item_count: int, cart_total: str):
        send_abandoned_cart_reminder_task.delay(user_id, item_count, cart_total)


@celery_app.task(name="cartsync.services.notification_service.send_abandoned_cart_reminder_task")
def send_abandoned_cart_reminder_task(user_id: str, item_count: int, cart_total: str):
    # kanal (email/push) podpina sie tutaj; na razie tylko log
    logger.info(f"[NOTIFICATION] User {user_id}: {item_count} item(s) waiting in cart, total {cart_total}")
    return {"user_id": user_id, "item_count": item_count, "cart_total": cart_total, "status": "sent"}
