"""
Ad-hoc email endpoints for signed-in users, plus SMTP status checks.
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from planorama.core.config import get_settings
from planorama.core.exceptions import DeliveryError
from planorama.core.logging import get_logger
from planorama.core.security import get_current_user
from planorama.models.user import User
from planorama.schemas.email import EmailSend, EmailSendResult, EmailServiceStatus
from planorama.services import email_service

logger = get_logger(__name__)
settings = get_settings()
router = APIRouter(prefix="/email", tags=["Email"])

NOT_CONFIGURED = "Email service not configured. Please set SMTP_USERNAME and SMTP_PASSWORD environment variables."


@router.post("/send", response_model=EmailSendResult)
async def send_email_endpoint(email_data: EmailSend, user: User = Depends(get_current_user)):
    if not email_service.is_email_service_configured():
        raise DeliveryError(NOT_CONFIGURED)

    html, text = email_service.render_message(
        subject=email_data.subject,
        message=email_data.message,
        sender_email=user.email,
        reply_to=email_data.reply_to,
    )
    message_id = await email_service.send_email(
        to=email_data.to,
        subject=email_data.subject,
        html=html,
        text=text,
        reply_to=email_data.reply_to or user.email,
    )
    logger.info("adhoc_email_sent", user_id=user.id, message_id=message_id)
    return EmailSendResult(message="Email sent successfully", message_id=message_id)


@router.get("/verify", response_model=EmailServiceStatus)
async def verify_email_endpoint(user: User = Depends(get_current_user)):
    """Open an SMTP session with the configured credentials. 500 when it fails."""
    if not email_service.is_email_service_configured():
        result = EmailServiceStatus(success=False, configured=False, message=NOT_CONFIGURED)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=result.model_dump())

    if not await email_service.verify_email_connection():
        result = EmailServiceStatus(
            success=False,
            configured=True,
            message="Email service is configured but connection failed. Please check your credentials.",
        )
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=result.model_dump())

    return EmailServiceStatus(
        success=True,
        configured=True,
        message="Email service is properly configured and connected",
    )


@router.get("/status", response_model=EmailServiceStatus)
async def email_status_endpoint(user: User = Depends(get_current_user)):
    configured = email_service.is_email_service_configured()
    return EmailServiceStatus(
        success=True,
        configured=configured,
        smtp_user=settings.SMTP_USERNAME if configured else None,
        message="Email service is configured" if configured else NOT_CONFIGURED,
    )
