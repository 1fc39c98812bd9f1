"""OTP delivery over SMS.ru, or to the log in console mode"""
import logging
import secrets

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

SMS_RU_URL = 'https://sms.ru/sms/send'


def generate_otp_code(length=4):
    return ''.join(secrets.choice('0123456789') for _ in range(length))


def send_sms(phone, text):
    """
    Send a text message. Returns True when the provider accepted it.

    With SMS_USE_CONSOLE enabled (or no API key) the message is only logged.
    """
    api_key = getattr(settings, 'SMS_API_KEY', '')
    if getattr(settings, 'SMS_USE_CONSOLE', True) or not api_key:
        logger.info(f"[SMS console] to={phone} text={text}")
        return True

    try:
        response = requests.get(
            SMS_RU_URL,
            params={'api_id': api_key, 'to': phone.lstrip('+'), 'msg': text, 'json': 1},
            timeout=10,
        )
        response.raise_for_status()
        payload = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.error(f"SMS delivery to {phone} failed: {str(e)}", exc_info=True)
        return False

    if payload.get('status') != 'OK':
        logger.warning(f"SMS.ru rejected message to {phone}: {payload}")
        return False
    return True
