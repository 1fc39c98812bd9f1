"""Order numbers and item codes"""
import logging
import random
import string
import time

from django.db import IntegrityError, transaction
from django.db.models import BigIntegerField, Max
from django.db.models.functions import Cast

from .models import Order, OrderItem

logger = logging.getLogger(__name__)

FIRST_ORDER_NUMBER = 10000
ORDER_NUMBER_ATTEMPTS = 3
ITEM_CODE_LENGTH = 6
ITEM_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_order_number():
    """
    Next number after the highest purely numeric order number.

    Numbering starts at 10000. If the candidate is somehow taken, the last
    four digits of the current timestamp are appended.
    """
    highest = (Order.objects
               .filter(order_number__regex=r'^[0-9]+$')
               .aggregate(m=Max(Cast('order_number', BigIntegerField())))['m'])
    if highest is None or highest < FIRST_ORDER_NUMBER:
        highest = FIRST_ORDER_NUMBER - 1

    candidate = str(highest + 1)
    if Order.objects.filter(order_number=candidate).exists():
        return f"{candidate}-{str(int(time.time() * 1000))[-4:]}"
    return candidate


def create_numbered_order(**fields):
    """
    Create an Order under a freshly generated number.

    Two concurrent checkouts can compute the same number; the loser's insert
    fails on the unique constraint and is retried with a new number.
    """
    for attempt in range(1, ORDER_NUMBER_ATTEMPTS + 1):
        number = generate_order_number()
        try:
            with transaction.atomic():
                return Order.objects.create(order_number=number, **fields)
        except IntegrityError:
            if attempt == ORDER_NUMBER_ATTEMPTS:
                raise
            logger.warning(f"Order number {number} already taken, retrying ({attempt}/{ORDER_NUMBER_ATTEMPTS})")


def generate_item_code(taken=None):
    """Random 6-character code not used by any order item nor present in `taken`"""
    taken = taken if taken is not None else set()
    while True:
        code = ''.join(random.choices(ITEM_CODE_ALPHABET, k=ITEM_CODE_LENGTH))
        if code in taken:
            continue
        if not OrderItem.objects.filter(item_code=code).exists():
            taken.add(code)
            return code
