"""Green API webhook payload handling"""
import logging

from django.conf import settings
from django.db import IntegrityError, transaction

from storefront.catalog.models import Provider
from storefront.core.utils import normalize_phone_to_e164

from .models import WhatsAppMessage

logger = logging.getLogger(__name__)

INCOMING_MESSAGE = 'incomingMessageReceived'


def extract_normalized_phone(raw_sender):
    """'79991234567@c.us' -> '+79991234567'"""
    if not raw_sender:
        return None
    return normalize_phone_to_e164(str(raw_sender).split('@', 1)[0]) or None


def extract_media(message_data):
    """Media fields from either the flat or the fileMessageData payload shape"""
    source = None
    if message_data.get('downloadUrl'):
        source = message_data
    elif isinstance(message_data.get('fileMessageData'), dict):
        source = message_data['fileMessageData']
    if not source:
        return {}
    return {
        'media_url': source.get('downloadUrl') or None,
        'media_mime_type': source.get('mimeType') or None,
        'media_file_name': source.get('fileName') or None,
        'media_caption': source.get('caption') or None,
    }


def extract_text(message_data):
    return (
        message_data.get('textMessage')
        or (message_data.get('textMessageData') or {}).get('textMessage')
        or (message_data.get('extendedTextMessage') or {}).get('text')
        or (message_data.get('extendedTextMessageData') or {}).get('text')
        or None
    )


def parse_timestamp(value):
    """Unix seconds from the payload; 0 when missing or not a number"""
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        logger.warning(f"Green API webhook: bad timestamp {value!r}, storing 0")
        return 0


def handle_incoming_message(payload):
    """
    Store an incoming group message.

    Returns the created WhatsAppMessage, or None when the payload is skipped
    (other webhook types, other chats, malformed data, duplicates).
    """
    if payload.get('typeWebhook') != INCOMING_MESSAGE:
        return None

    message_data = payload.get('messageData')
    id_message = payload.get('idMessage')
    if not message_data or not id_message:
        logger.warning("Green API webhook: invalid message data, skipping")
        return None

    sender_data = payload.get('senderData') or {}
    chat_id = sender_data.get('chatId')
    if not chat_id:
        logger.warning("Green API webhook: no chat id, skipping")
        return None
    if chat_id != getattr(settings, 'GREEN_API_TARGET_GROUP_ID', ''):
        return None

    if WhatsAppMessage.objects.filter(wa_message_id=id_message).exists():
        logger.info(f"Message {id_message} already exists, skipping")
        return None

    sender = extract_normalized_phone(sender_data.get('sender'))
    provider = Provider.objects.filter(phone=sender).first() if sender else None
    media = extract_media(message_data)

    try:
        with transaction.atomic():
            message = WhatsAppMessage.objects.create(
                wa_message_id=id_message,
                chat_id=chat_id,
                sender=sender,
                from_name=sender_data.get('senderName') or None,
                type=message_data.get('typeMessage'),
                text=extract_text(message_data),
                timestamp=parse_timestamp(payload.get('timestamp')),
                from_me=False,
                provider=provider,
                raw_payload=payload,
                **media,
            )
    except IntegrityError:
        # concurrent delivery of the same message
        logger.info(f"Message {id_message} already exists, skipping")
        return None
    logger.info(f"Saved webhook message {id_message}" + (f" with media: {message.media_url}" if message.media_url else ''))
    return message
