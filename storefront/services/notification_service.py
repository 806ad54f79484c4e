# storefront/services/notification_service.py
from storefront.celery_worker import celery_app
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Sends notifications (order confirmations, admin alerts).
    Delivery runs in a Celery worker.
    """

    def send(self, to: str, subject: str, body: str):
        send_email_task.delay(to, subject, body)


@celery_app.task(name="storefront.services.notification_service.send_email_task")
def send_email_task(to: str, subject: str, body: str):
    """
    Celery task - a real deployment would hand this to an email provider.
    For now it only logs.
    """
    logger.info(f"[NOTIFICATION] To {to}: {subject} - {body}")

    return {"to": to, "subject": subject, "status": "sent"}
