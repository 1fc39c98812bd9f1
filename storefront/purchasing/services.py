import logging

from django.db import transaction

from storefront.orders.models import OrderItem
from storefront.orders.numbering import create_numbered_order, generate_item_code

logger = logging.getLogger(__name__)


def create_order_from_purchase(purchase, user):
    """Order for `user` with one line (qty 1) per purchase item, priced at the purchase price"""
    items = list(purchase.items.select_related('product').order_by('sort_index', 'id'))
    subtotal = sum(item.price for item in items)

    with transaction.atomic():
        order = create_numbered_order(
            user=user,
            full_name=user.name or 'Admin',
            phone=user.phone or '',
            email=user.email or None,
            address='Закупка',
            subtotal=subtotal,
            total=subtotal,
            comment=f'Создано из закупки: {purchase.name}',
        )
        taken = set()
        OrderItem.objects.bulk_create([
            OrderItem(
                order=order,
                product=item.product,
                slug=item.product.slug,
                name=item.name,
                article=item.product.article,
                price_box=item.price,
                qty=1,
                item_code=generate_item_code(taken),
            )
            for item in items
        ])

    logger.info(f"Order {order.order_number} created from purchase {purchase.pk} with {len(items)} items")
    return order
