"""
Test utilities and factories for creating test data
"""
import random
import string
from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from storefront.catalog.models import Category, Provider, Product, ProductImage
from storefront.orders.models import TransportCompany, Order, OrderItem
from storefront.orders.numbering import generate_item_code, generate_order_number
from storefront.purchasing.models import Purchase, PurchaseItem
from storefront.sourcing.models import DraftProduct, DraftProductImage, WhatsAppMessage

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_lowercase + string.digits, k=length))

    @staticmethod
    def random_phone():
        return f'+79{random.randint(100000000, 999999999)}'

    @staticmethod
    def create_user(role=User.ROLE_CLIENT, phone=None, name=None, password='testpass123', provider=None):
        """Create a test user; username mirrors the phone as in real sign-ups"""
        if not phone:
            phone = TestDataFactory.random_phone()
        return User.objects.create_user(
            username=phone,
            phone=phone,
            password=password,
            name=name or f'User {TestDataFactory.random_string(4)}',
            role=role,
            provider=provider,
        )

    @staticmethod
    def create_admin(**kwargs):
        return TestDataFactory.create_user(role=User.ROLE_ADMIN, **kwargs)

    @staticmethod
    def create_provider(name=None, phone=None, place=None):
        """Create a test provider"""
        if not name:
            name = f'Provider_{TestDataFactory.random_string(6)}'
        return Provider.objects.create(name=name, phone=phone, place=place or 'Садовод')

    @staticmethod
    def create_category(name=None, parent=None, segment=None, sort=500, is_active=True):
        """Create a test category below `parent` (or at the root)"""
        if not name:
            name = f'Category {TestDataFactory.random_string(6)}'
        if not segment:
            segment = TestDataFactory.random_string(8)
        path = f'{parent.path}/{segment}' if parent else segment
        return Category.objects.create(
            name=name,
            slug=path.replace('/', '-'),
            path=path,
            parent=parent,
            sort=sort,
            is_active=is_active,
        )

    @staticmethod
    def create_product(name=None, slug=None, category=None, provider=None, price_pair=None,
                       sizes=None, is_active=True, **extra):
        """Create a test product"""
        if not name:
            name = f'Product {TestDataFactory.random_string(6)}'
        if not slug:
            slug = f'product-{TestDataFactory.random_string(8)}'
        if not category:
            category = TestDataFactory.create_category()
        if price_pair is None:
            price_pair = Decimal('500.00')
        if sizes is None:
            sizes = [{'size': '36', 'count': 1}, {'size': '37', 'count': 1}]
        return Product.objects.create(
            name=name,
            slug=slug,
            category=category,
            provider=provider,
            price_pair=price_pair,
            sizes=sizes,
            is_active=is_active,
            **extra
        )

    @staticmethod
    def create_product_image(product, url=None, color=None, is_primary=False, sort=0, is_active=True):
        """Create a test product image"""
        if not url:
            url = f'https://cdn.example.com/{TestDataFactory.random_string(10)}.jpg'
        return ProductImage.objects.create(
            product=product,
            url=url,
            color=color,
            is_primary=is_primary,
            sort=sort,
            is_active=is_active,
        )

    @staticmethod
    def create_draft(name=None, category=None, provider=None, with_image=True, **extra):
        """Create a test draft with one active primary image"""
        draft = DraftProduct.objects.create(
            name=name or f'Draft {TestDataFactory.random_string(6)}',
            category=category,
            provider=provider,
            price_pair=extra.pop('price_pair', Decimal('450.00')),
            sizes=extra.pop('sizes', [{'size': '38', 'count': 1}]),
            **extra
        )
        if with_image:
            DraftProductImage.objects.create(
                draft=draft,
                url=f'https://cdn.example.com/drafts/{TestDataFactory.random_string(10)}.jpg',
                is_primary=True,
            )
        return draft

    @staticmethod
    def create_whatsapp_message(provider=None, text=None, media_url=None, timestamp=None, **extra):
        """Create a test WhatsApp message"""
        return WhatsAppMessage.objects.create(
            wa_message_id=extra.pop('wa_message_id', f'wa-{TestDataFactory.random_string(12)}'),
            chat_id=extra.pop('chat_id', '120363000000000000@g.us'),
            sender=provider.phone if provider else None,
            type='imageMessage' if media_url else 'textMessage',
            text=text,
            media_url=media_url,
            timestamp=timestamp if timestamp is not None else random.randint(1700000000, 1800000000),
            provider=provider,
            **extra
        )

    @staticmethod
    def create_transport_company(name=None):
        if not name:
            name = f'Transport {TestDataFactory.random_string(6)}'
        return TransportCompany.objects.create(name=name)

    @staticmethod
    def create_order(user=None, products=None, qty=1, status=None, gruzchik=None):
        """Create a test order with one line per product at box price"""
        if user is None:
            user = TestDataFactory.create_user()
        if products is None:
            products = [TestDataFactory.create_product()]
        order = Order.objects.create(
            order_number=generate_order_number(),
            user=user,
            gruzchik=gruzchik,
            phone=user.phone or '+79990000000',
            full_name=user.name,
            **({'status': status} if status else {})
        )
        total = Decimal('0')
        for product in products:
            price_box = product.price_pair * max(len(product.sizes or []), 1)
            OrderItem.objects.create(
                order=order,
                product=product,
                slug=product.slug,
                name=product.name,
                price_box=price_box,
                qty=qty,
                item_code=generate_item_code(),
            )
            total += price_box * qty
        order.subtotal = total
        order.total = total
        order.save()
        return order

    @staticmethod
    def create_purchase(user, name=None):
        """Create a test purchase"""
        return Purchase.objects.create(
            name=name or f'Закупка {TestDataFactory.random_string(4)}',
            created_by=user,
        )

    @staticmethod
    def create_purchase_item(purchase, product, color=None, price=None, sort_index=None):
        """Create a test purchase item"""
        if price is None:
            price = product.price_pair
        if sort_index is None:
            sort_index = purchase.items.count() + 1
        return PurchaseItem.objects.create(
            purchase=purchase,
            product=product,
            color=color,
            name=product.name,
            description=product.description,
            price=price,
            old_price=price * Decimal('1.8'),
            sort_index=sort_index,
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
