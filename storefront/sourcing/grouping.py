"""
AI grouping of supplier messages into draft products.

Unprocessed WhatsApp messages of one provider are sent to Groq, which
returns groups of message ids that describe a single product together with
the fields it could extract. Each valid group becomes a DraftProduct.
"""
import json
import logging
import re
import uuid
from decimal import Decimal, InvalidOperation

from django.db import transaction

from storefront.core.exceptions import GroqAPIError

from .groq import GroqClient
from .models import DraftProduct, DraftProductImage, WhatsAppMessage

logger = logging.getLogger(__name__)

GROUPING_SYSTEM_PROMPT = """You analyze WhatsApp messages from a shoe supplier and group them by product.

Rules:
1. All messages in a group come from the same author.
2. Consecutive messages in a group are at most 60 seconds apart; a larger gap starts a new product.
3. Every group has at least one image message and at least one text message. Skip groups that do not.
4. One continuous sequence (text+images or images+text) is one product. A repeated pattern is several products.
5. Each message belongs to at most one group.

Return JSON: {"groups": [{"groupId": str, "messageIds": [str], "name": str, "pricePair": number|null,
"material": str|null, "gender": "men"|"women"|"girls"|"boys"|null, "season": "autumn"|"winter"|"spring"|"summer"|null,
"sizes": [{"size": str, "count": int}], "description": str|null}]}"""


def format_messages_for_prompt(messages):
    lines = []
    for msg in messages:
        lines.append(
            f"ID: {msg.pk} | AUTHOR/SENDER ID: {msg.sender or 'unknown'} | Timestamp: {msg.timestamp} | "
            f"Has Image: {'YES' if msg.has_media else 'NO'} | Has Text: {'YES' if msg.text else 'NO'} | "
            f"Text: {(msg.text or msg.media_caption or '').strip()}"
        )
    return '\n'.join(lines)


def parse_price(value):
    if value is None or value == '':
        return None
    cleaned = re.sub(r'[^\d.,]', '', str(value)).replace(',', '.')
    try:
        return Decimal(cleaned) if cleaned else None
    except InvalidOperation:
        return None


def parse_groups(content):
    try:
        payload = json.loads(content or '{}')
    except json.JSONDecodeError as e:
        raise GroqAPIError(f'Invalid grouping response: {e}')
    groups = payload.get('groups') if isinstance(payload, dict) else None
    if not isinstance(groups, list):
        raise GroqAPIError('Invalid grouping response: "groups" missing')
    return groups


def create_draft_from_group(provider, group, messages_by_id):
    """Create a draft for one AI group. Returns None when the group is unusable."""
    ids = []
    for raw_id in group.get('messageIds') or []:
        try:
            message_id = int(raw_id)
        except (TypeError, ValueError):
            continue
        if message_id in messages_by_id and message_id not in ids:
            ids.append(message_id)

    group_messages = [messages_by_id[i] for i in ids]
    images = [m for m in group_messages if m.has_media]
    texts = [m for m in group_messages if m.text]
    if not images or not texts:
        logger.warning(f"Skipping group {group.get('groupId')}: needs both image and text messages")
        return None

    ai_group_id = f'grp-{uuid.uuid4().hex[:12]}'
    with transaction.atomic():
        draft = DraftProduct.objects.create(
            name=(group.get('name') or '').strip() or None,
            price_pair=parse_price(group.get('pricePair')),
            material=group.get('material'),
            gender=group.get('gender'),
            season=group.get('season'),
            description=group.get('description') or '\n'.join(m.text for m in texts),
            provider=provider,
            sizes=group.get('sizes') or [],
            source=ids,
        )
        DraftProductImage.objects.bulk_create([
            DraftProductImage(
                draft=draft,
                url=msg.media_url,
                sort=index,
                is_primary=index == 0,
                width=msg.media_width,
                height=msg.media_height,
            )
            for index, msg in enumerate(images)
        ])
        WhatsAppMessage.objects.filter(pk__in=ids).update(
            processed=True, ai_group_id=ai_group_id, draft_product=draft,
        )
    return draft


def group_provider_messages(provider, messages=None, client=None):
    """
    Group a provider's unprocessed messages into drafts.

    Returns the list of created DraftProduct objects. Raises GroqAPIError
    when the model cannot be reached or answers with malformed JSON.
    """
    if messages is None:
        messages = WhatsAppMessage.objects.filter(provider=provider, processed=False).order_by('timestamp', 'created_at')
    messages = list(messages)
    if not messages:
        return []

    client = client or GroqClient()
    logger.info(f"Grouping {len(messages)} messages for provider {provider.pk} with Groq")
    content = client.chat_completion(
        [
            {'role': 'system', 'content': GROUPING_SYSTEM_PROMPT},
            {'role': 'user', 'content': format_messages_for_prompt(messages)},
        ],
        json_mode=True,
    )
    groups = parse_groups(content)
    messages_by_id = {m.pk: m for m in messages}

    drafts = []
    for group in groups:
        draft = create_draft_from_group(provider, group, messages_by_id)
        if draft is not None:
            drafts.append(draft)
            # each message belongs to one group only
            for message_id in draft.source:
                messages_by_id.pop(message_id, None)
    logger.info(f"Provider {provider.pk}: {len(groups)} groups returned, {len(drafts)} drafts created")
    return drafts
