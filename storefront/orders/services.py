"""
Order creation and total recalculation.

Products are sold by the box: a box holds one pair of every listed size, so
its price is the pair price times the number of sizes.
"""
import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Q

from storefront.catalog.models import Product
from storefront.core.exceptions import OrderCreationError

from .models import OrderItem, OrderItemFeedback
from .numbering import create_numbered_order, generate_item_code

logger = logging.getLogger(__name__)


def box_price(price_pair, sizes):
    pairs = len(sizes) if isinstance(sizes, list) else 0
    return Decimal(str(price_pair or 0)) * max(pairs, 1)


def _find_product(products, item):
    slug = item.get('slug')
    product_id = item.get('productId')
    for product in products:
        if slug and product.slug == slug:
            return product
        if product_id is not None and str(product.pk) == str(product_id):
            return product
    return None


def _resolve_lines(items):
    """(product, qty) per requested line; raises OrderCreationError on unknown products"""
    slugs = [i['slug'] for i in items if i.get('slug')]
    ids = [i['productId'] for i in items if i.get('productId') is not None]
    ids = [int(pid) for pid in ids if str(pid).isdigit()]
    products = list(Product.objects.filter(Q(slug__in=slugs) | Q(pk__in=ids)))

    lines = []
    for item in items:
        product = _find_product(products, item)
        if product is None:
            raise OrderCreationError('Some products not found')
        lines.append((product, int(item['qty'])))
    return lines


def _build_items(order, lines):
    taken = set()
    order_items = []
    for product, qty in lines:
        order_items.append(OrderItem(
            order=order,
            product=product,
            slug=product.slug,
            name=product.name,
            article=product.article,
            price_box=box_price(product.price_pair, product.sizes),
            qty=qty,
            item_code=generate_item_code(taken),
        ))
    return OrderItem.objects.bulk_create(order_items)


def create_order(user, items, customer, transport_id=None):
    """
    Create an order for `user`.

    `items` is a list of {"slug" or "productId", "qty"}; `customer` carries
    name, phone, email, address and comment. Raises OrderCreationError when
    any referenced product does not exist.
    """
    lines = _resolve_lines(items)

    with transaction.atomic():
        order = create_numbered_order(
            user=user,
            full_name=customer.get('name'),
            phone=customer.get('phone'),
            email=customer.get('email'),
            address=customer.get('address'),
            comment=customer.get('comment'),
            transport_id=transport_id,
        )
        order_items = _build_items(order, lines)

        total = sum((item.price_box * item.qty for item in order_items), Decimal('0'))
        order.subtotal = total
        order.total = total
        order.save(update_fields=['subtotal', 'total', 'updated_at'])

    logger.info(f"Order {order.order_number} created: {len(order_items)} items, total {total}")
    return order


def add_order_items(order, items):
    """Append lines to an existing order at current box prices and refresh its total"""
    lines = _resolve_lines(items)
    with transaction.atomic():
        order_items = _build_items(order, lines)
        recalculate_order_total(order)
    logger.info(f"Order {order.order_number}: {len(order_items)} items added by admin")
    return order_items


def calculate_order_total(order):
    """Sum of box price times quantity over items the client has not refused"""
    items = order.items.exclude(feedbacks__feedback_type__in=OrderItemFeedback.REFUSAL_TYPES).distinct()
    return sum((item.price_box * item.qty for item in items), Decimal('0'))


def recalculate_order_total(order):
    total = calculate_order_total(order)
    order.subtotal = total
    order.total = total
    order.save(update_fields=['subtotal', 'total', 'updated_at'])
    logger.info(f"Order {order.order_number} total recalculated: {total}")
    return total
