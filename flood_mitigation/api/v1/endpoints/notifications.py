import logging

from fastapi import APIRouter, Depends

from flood_mitigation.api import deps
from flood_mitigation.schemas.notifications import (
    NotificationResult,
    TelegramRequest,
    WhatsAppRequest,
)
from flood_mitigation.services.notification_service import (
    TelegramNotifier,
    WhatsAppNotifier,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _response(result: NotificationResult, recipient_key: str) -> dict:
    payload = {
        "success": result.success,
        "messageId": result.message_id,
        "status": result.status,
        "timestamp": result.timestamp.isoformat(),
    }
    payload[recipient_key] = result.recipient
    return payload


@router.post("/telegram")
def send_telegram(
    request: TelegramRequest,
    notifier: TelegramNotifier = Depends(deps.get_telegram_notifier),
):
    """
    ## Send Telegram message

    Relays `message` to `chatId` through the Telegram Bot API.

    Errors:
    - **500**: bot token not configured
    - **400**: chat not found or bot blocked
    - **429**: Telegram rate limit
    - **502**: token rejected or other Telegram failure
    """
    logger.info(f"Telegram relay called (type={request.type})")
    result = notifier.send(request.chat_id, request.message)
    return _response(result, "chatId")


@router.post("/whatsapp")
def send_whatsapp(
    request: WhatsAppRequest,
    notifier: WhatsAppNotifier = Depends(deps.get_whatsapp_notifier),
):
    """
    ## Send WhatsApp message

    Relays `message` to `to` through Twilio.
    """
    logger.info(f"WhatsApp relay called (type={request.type})")
    result = notifier.send(request.to, request.message)
    return _response(result, "to")
