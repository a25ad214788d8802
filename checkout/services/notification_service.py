# checkout/services/notification_service.py
from checkout.celery_worker import celery_app
from checkout.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Post-commit notifications, processed asynchronously by Celery.
    """

    @staticmethod
    def send_order_notification(customer_id: int, order_id: int):
        send_order_notification_task.delay(customer_id, order_id)


@celery_app.task(name="checkout.services.notification_service.send_order_notification_task")
def send_order_notification_task(customer_id: int, order_id: int):
    """
    Celery task - a real deployment would hand this to email/SMS/push.
    Here it only logs.
    """
    logger.info(f"[NOTIFICATION] Customer {customer_id}: order {order_id} has been placed")

    return {"customer_id": customer_id, "order_id": order_id, "status": "sent"}
