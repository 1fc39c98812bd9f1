"""
Groq chat completions client with exponential backoff.

Groq exposes an OpenAI-compatible endpoint; calls go through `requests`
and are retried on rate limits, server errors and timeouts.
"""
import json
import logging
import time

import requests
from django.conf import settings

from storefront.core.exceptions import GroqAPIError

logger = logging.getLogger(__name__)

RETRYABLE_MESSAGES = (
    'over capacity',
    'rate limit',
    'back off',
    'internal_server_error',
    'deadline exceeded',
    'timeout',
)


def _status_of(exc):
    status = getattr(exc, 'status_code', None)
    if status is None:
        response = getattr(exc, 'response', None)
        status = getattr(response, 'status_code', None)
    return status


def is_groq_retryable_error(exc):
    """True for 429, 5xx and transient capacity/timeout failures"""
    if exc is None:
        return False
    if isinstance(exc, (requests.Timeout, requests.ConnectionError)):
        return True

    status = _status_of(exc)
    if status == 429:
        return True
    if status is not None and 500 <= status < 600:
        return True

    message = str(exc).lower()
    return any(marker in message for marker in RETRYABLE_MESSAGES)


def with_retry(fn, max_retries=5, base_delay=2.0, max_delay=60.0,
               should_retry=is_groq_retryable_error, sleep=time.sleep):
    """
    Call `fn()` until it succeeds, retrying up to `max_retries` times.

    The delay before retry n (starting at 0) is min(base_delay * 2**n, max_delay).
    Non-retryable errors and the last failure propagate unchanged.
    """
    attempt = 0
    while True:
        try:
            return fn()
        except Exception as exc:
            if attempt >= max_retries or not should_retry(exc):
                raise
            delay = min(base_delay * (2 ** attempt), max_delay)
            logger.warning(f"Groq call failed ({exc}); retry {attempt + 1}/{max_retries} in {delay:.1f}s")
            sleep(delay)
            attempt += 1


class GroqClient:
    """Minimal client for Groq's OpenAI-compatible chat completions API"""

    def __init__(self, api_key=None, api_url=None, model=None, timeout=120, session=None):
        self.api_key = api_key or getattr(settings, 'GROQ_API_KEY', '')
        self.api_url = api_url or getattr(settings, 'GROQ_API_URL', 'https://api.groq.com/openai/v1/chat/completions')
        self.model = model or getattr(settings, 'GROQ_MODEL', 'llama-3.3-70b-versatile')
        self.timeout = timeout
        self.session = session or requests.Session()
        if not self.api_key:
            raise GroqAPIError('GROQ_API_KEY is required')

    def _post(self, payload):
        response = self.session.post(
            self.api_url,
            headers={
                'Authorization': f'Bearer {self.api_key}',
                'Content-Type': 'application/json',
            },
            json=payload,
            timeout=self.timeout,
        )
        if response.status_code >= 400:
            try:
                error = response.json().get('error', {})
            except ValueError:
                error = {}
            message = error.get('message') or response.text or f'HTTP {response.status_code}'
            raise GroqAPIError(message, status_code=response.status_code, error_type=error.get('type'))
        return response.json()

    def chat_completion(self, messages, model=None, temperature=0.1, json_mode=False,
                        max_retries=5, base_delay=2.0, max_delay=60.0):
        """Run a chat completion and return the first choice's message content"""
        payload = {
            'model': model or self.model,
            'messages': messages,
            'temperature': temperature,
        }
        if json_mode:
            payload['response_format'] = {'type': 'json_object'}

        data = with_retry(
            lambda: self._post(payload),
            max_retries=max_retries,
            base_delay=base_delay,
            max_delay=max_delay,
        )
        try:
            return data['choices'][0]['message']['content'] or ''
        except (KeyError, IndexError, TypeError):
            raise GroqAPIError(f'Unexpected Groq response: {json.dumps(data)[:500]}')
