"""
Management command to recalculate order totals, leaving out refused items
"""
import logging
from decimal import Decimal

from django.core.management.base import BaseCommand

from storefront.orders.models import Order
from storefront.orders.services import calculate_order_total

logger = logging.getLogger(__name__)

TOLERANCE = Decimal('0.01')


class Command(BaseCommand):
    help = "Recalculates order totals from box prices, excluding items refused by the client"

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report the differences without saving them',
        )

    def handle(self, *args, **options):
        dry_run = options.get('dry_run', False)

        self.stdout.write(self.style.SUCCESS("================================================================================"))
        self.stdout.write(self.style.SUCCESS("RECALCULATING ORDER TOTALS"))
        self.stdout.write(self.style.SUCCESS("================================================================================"))

        orders = Order.objects.order_by('-created_at')
        processed = 0
        updated = 0
        difference_sum = Decimal('0')

        for order in orders:
            processed += 1
            new_total = calculate_order_total(order)
            difference = new_total - order.total
            if abs(difference) <= TOLERANCE:
                continue

            updated += 1
            difference_sum += difference
            sign = '+' if difference > 0 else ''
            self.stdout.write(f"  Order {order.order_number}: {order.total:.2f} -> {new_total:.2f} ({sign}{difference:.2f})")
            if not dry_run:
                order.subtotal = new_total
                order.total = new_total
                order.save(update_fields=['subtotal', 'total', 'updated_at'])

        logger.info(f"Order totals recalculated: {updated} of {processed} changed")
        sign = '+' if difference_sum > 0 else ''
        self.stdout.write(self.style.SUCCESS("Summary:"))
        self.stdout.write(f"  Total orders processed: {processed}")
        self.stdout.write(f"  Orders updated: {updated}")
        self.stdout.write(f"  Orders unchanged: {processed - updated}")
        self.stdout.write(f"  Total difference: {sign}{difference_sum:.2f}")
        if dry_run:
            self.stdout.write(self.style.WARNING("Dry run: no changes saved"))
