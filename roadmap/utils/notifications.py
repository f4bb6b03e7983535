import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from roadmap.core.config import settings

logger = logging.getLogger(__name__)


def send_email(user_email: str, subject: str, message: str) -> bool:
    """
    Отправляет письмо через SMTP.
    В режиме разработки письмо только логируется.
    """
    logger.info(f"Sending notification to {user_email}: {subject}")

    if settings.ENVIRONMENT == "development":
        logger.info(f"Email content: {message}")
        return True

    msg = MIMEMultipart()
    msg["From"] = settings.SMTP_FROM_EMAIL
    msg["To"] = user_email
    msg["Subject"] = subject
    msg.attach(MIMEText(message, "plain"))

    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
            server.starttls()
            if settings.SMTP_USER:
                server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send notification to {user_email}: {e}")
        return False

    return True
