import logging

from roadmap.core.config import settings
from roadmap.worker.tasks import send_notification

logger = logging.getLogger(__name__)


def queue_email(user_email: str, subject: str, message: str) -> bool:
    """
    Ставит письмо в очередь Celery.
    Недоступный брокер не должен ломать основную операцию.
    """
    try:
        send_notification.delay(user_email=user_email, subject=subject, message=message)
        return True
    except Exception as e:
        logger.error(f"Failed to queue email to {user_email}: {e}")
        return False


def send_password_reset_email(user_email: str, token: str) -> bool:
    reset_url = f"{settings.FRONTEND_URL}/reset-password?token={token}"
    return queue_email(
        user_email,
        "Password reset request",
        "You requested a password reset. Follow the link below to choose a new password "
        + f"(valid for {settings.RESET_TOKEN_EXPIRE_MINUTES} minutes):\n{reset_url}\n\n"
        + "If you did not request this, ignore this email.",
    )


def send_invite_email(user_email: str, token: str, project_title: str, inviter_name: str, role: str) -> bool:
    accept_url = f"{settings.FRONTEND_URL}/invites/{token}"
    return queue_email(
        user_email,
        f"You're invited to join {project_title}",
        f"{inviter_name} invited you to join '{project_title}' as {role}.\n"
        + f"Accept the invitation (valid for {settings.INVITE_EXPIRE_DAYS} days):\n{accept_url}",
    )


def send_welcome_email(user_email: str, user_name: str, project_title: str, role: str) -> bool:
    return queue_email(
        user_email,
        f"Welcome to {project_title}",
        f"Hi {user_name}, you are now a {role} of '{project_title}'.",
    )
