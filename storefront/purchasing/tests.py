"""
Tests for purchase mode: item management, site export and order creation
"""
from decimal import Decimal
from io import BytesIO
from types import SimpleNamespace

from django.test import TestCase
from openpyxl import load_workbook
from rest_framework import status

from storefront.core.models import AuditLog
from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from storefront.orders.models import Order
from storefront.purchasing.exports import (
    HEADER, TITLE_ROW, content_disposition, format_number, format_purchase_description,
    format_sizes, old_price_for, select_images,
)
from storefront.purchasing.models import Purchase, PurchaseItem


def image(url, color=None, is_primary=False):
    return SimpleNamespace(url=url, color=color, is_primary=is_primary)


class ExportFormattingTests(TestCase):

    def test_format_sizes(self):
        self.assertEqual(format_sizes([{'size': '36'}, {'size': 37}]), '36,37')
        self.assertEqual(format_sizes(['36', 37]), '36,37')
        self.assertEqual(format_sizes({'36': True, '37': False, '38': 1}), '36,38')
        self.assertEqual(format_sizes('36-41'), '36-41')
        self.assertEqual(format_sizes([]), '')
        self.assertEqual(format_sizes(None), '')
        self.assertEqual(format_sizes([{'name': 'x'}, '36']), '')

    def test_numbers(self):
        self.assertEqual(format_number(Decimal('1500.00')), '1500')
        self.assertEqual(format_number(Decimal('99.50')), '99.5')
        self.assertEqual(format_number(None), '')
        self.assertEqual(old_price_for(Decimal('500')), Decimal('900.00'))
        self.assertEqual(old_price_for(Decimal('333.33')), Decimal('599.99'))

    def test_description(self):
        text = format_purchase_description(
            description='Кожаные кеды', material='Кожа',
            sizes=[{'size': '36'}, {'size': '37'}], price_pair=Decimal('500.00'),
        )
        self.assertEqual(text.split('\n'), [
            'Кожаные кеды',
            'Материал: Кожа',
            'Размеры: 36,37',
            'В коробке: 2 пар',
            'Цена за пару: 500 руб.',
        ])
        self.assertEqual(format_purchase_description(), '')

    def test_select_images_by_color(self):
        images = [image('a', 'Black', True), image('b', 'white'), image('c', 'White')]
        self.assertEqual([i.url for i in select_images(images, 'WHITE')], ['b', 'c'])
        self.assertEqual(select_images(images, 'Red'), [])

    def test_select_images_without_color(self):
        images = [image('a', 'Black', True), image('b', 'black'), image('c', 'White')]
        self.assertEqual([i.url for i in select_images(images)], ['a', 'b'])

        images = [image('a', None, True), image('b', 'White'), image('c', None)]
        self.assertEqual([i.url for i in select_images(images)], ['a', 'c'])

        self.assertEqual(select_images([]), [])

    def test_content_disposition(self):
        header = content_disposition('purchase-export-Весна-2026-10-19.csv')
        self.assertTrue(header.startswith('attachment; filename="purchase-export-_____-2026-10-19.csv"'))
        self.assertIn("filename*=UTF-8''purchase-export-%D0%92%D0%B5%D1%81%D0%BD%D0%B0-2026-10-19.csv", header)


class PurchaseAPITests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.purchase = TestDataFactory.create_purchase(self.admin, name='Весна')
        self.product = TestDataFactory.create_product(
            name='Кеды', price_pair=Decimal('500'), article='K-100', material='Текстиль',
        )

    def items_url(self):
        return f'/api/v1/admin/purchases/{self.purchase.pk}/items/'

    def test_create_and_list(self):
        response = self.client.post('/api/v1/admin/purchases/', {'name': '  Осень  '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['name'], 'Осень')

        response = self.client.post('/api/v1/admin/purchases/', {'name': '   '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        TestDataFactory.create_purchase_item(self.purchase, self.product)
        response = self.client.get('/api/v1/admin/purchases/')
        counts = {p['name']: p['itemsCount'] for p in response.data['purchases']}
        self.assertEqual(counts, {'Осень': 0, 'Весна': 1})

    def test_visible_only_to_creator(self):
        other = AuthenticatedAPIClient()
        other.authenticate_user(TestDataFactory.create_admin())
        response = other.get(f'/api/v1/admin/purchases/{self.purchase.pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        response = other.get('/api/v1/admin/purchases/')
        self.assertEqual(response.data['purchases'], [])

    def test_rename_and_delete(self):
        response = self.client.patch(f'/api/v1/admin/purchases/{self.purchase.pk}/', {'name': 'Лето'}, format='json')
        self.assertEqual(response.data['name'], 'Лето')
        response = self.client.delete(f'/api/v1/admin/purchases/{self.purchase.pk}/')
        self.assertTrue(response.data['success'])
        self.assertFalse(Purchase.objects.filter(pk=self.purchase.pk).exists())

    def test_client_forbidden(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/admin/purchases/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_add_item(self):
        TestDataFactory.create_purchase_item(self.purchase, TestDataFactory.create_product(), sort_index=7)
        response = self.client.post(self.items_url(), {'productId': self.product.pk, 'color': 'Черный'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['sortIndex'], 8)
        self.assertEqual(Decimal(response.data['oldPrice']), Decimal('900'))
        self.assertIn('Материал: Текстиль', response.data['description'])
        self.assertIn('Цена за пару: 500 руб.', response.data['description'])

    def test_add_same_color_twice(self):
        self.client.post(self.items_url(), {'productId': self.product.pk, 'color': 'Черный'}, format='json')
        response = self.client.post(self.items_url(), {'productId': self.product.pk, 'color': 'Черный'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Этот цвет товара уже в закупке')
        response = self.client.post(self.items_url(), {'productId': self.product.pk, 'color': 'Белый'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_add_item_errors(self):
        response = self.client.post(self.items_url(), {'productId': 'abc'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post(self.items_url(), {'productId': 999999}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_update_price_recomputes_old_price(self):
        item = TestDataFactory.create_purchase_item(self.purchase, self.product)
        url = f'{self.items_url()}{item.pk}/'
        response = self.client.put(url, {'price': '1000', 'name': 'Кеды летние'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        item.refresh_from_db()
        self.assertEqual(item.old_price, Decimal('1800.00'))
        self.assertEqual(item.name, 'Кеды летние')

        response = self.client.put(url, {'price': 'дорого'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_item(self):
        item = TestDataFactory.create_purchase_item(self.purchase, self.product)
        self.client.delete(f'{self.items_url()}{item.pk}/')
        self.assertFalse(PurchaseItem.objects.filter(pk=item.pk).exists())
        response = self.client.delete(f'{self.items_url()}{item.pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class PurchaseExportTests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.purchase = TestDataFactory.create_purchase(self.admin, name='Весна')
        product = TestDataFactory.create_product(name='Кеды', article='K-100', price_pair=Decimal('500'))
        TestDataFactory.create_product_image(product, url='https://cdn.example.com/black.jpg',
                                             color='Черный', is_primary=True)
        TestDataFactory.create_product_image(product, url='https://cdn.example.com/white.jpg', color='Белый')
        TestDataFactory.create_purchase_item(self.purchase, product, color='Белый', price=Decimal('500'))
        self.url = f'/api/v1/admin/purchases/{self.purchase.pk}/export/'

    def test_csv(self):
        response = self.client.get(self.url, {'format': 'csv'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Cache-Control'], 'no-store')
        self.assertIn("filename*=UTF-8''purchase-export-", response['Content-Disposition'])

        lines = response.content.decode('utf-8').split('\n')
        self.assertEqual(lines[0], '\ufeff' + TITLE_ROW)
        self.assertEqual(lines[1], ';'.join(HEADER))
        self.assertEqual(lines[2], 'Кеды;K-100;500;900;;36,37;https://cdn.example.com/white.jpg')
        self.assertTrue(AuditLog.objects.filter(action='purchase_export').exists())

    def test_xlsx_is_default(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response['Content-Type'].startswith('application/vnd.openxmlformats'))

        ws = load_workbook(BytesIO(response.content)).active
        self.assertEqual(ws.title, 'Покупки')
        self.assertEqual(ws['A1'].value, TITLE_ROW)
        self.assertEqual([c.value for c in ws[2]], HEADER)
        self.assertEqual(ws['A3'].value, 'Кеды')
        self.assertEqual(ws['G3'].value, 'https://cdn.example.com/white.jpg')

    def test_unknown_format(self):
        response = self.client.get(self.url, {'format': 'pdf'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class PurchaseCreateOrderTests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_admin(name='Ольга')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.purchase = TestDataFactory.create_purchase(self.admin, name='Весна')
        self.url = f'/api/v1/admin/purchases/{self.purchase.pk}/create-order/'

    def test_empty_purchase(self):
        response = self.client.post(self.url)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Order.objects.count(), 0)

    def test_creates_order(self):
        TestDataFactory.create_purchase_item(self.purchase, TestDataFactory.create_product(), price=Decimal('700'))
        TestDataFactory.create_purchase_item(self.purchase, TestDataFactory.create_product(), price=Decimal('300'))
        response = self.client.post(self.url)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        order = Order.objects.get(pk=response.data['order']['id'])
        self.assertEqual(order.comment, 'Создано из закупки: Весна')
        self.assertEqual(order.full_name, 'Ольга')
        self.assertEqual(order.user, self.admin)
        self.assertEqual(order.total, Decimal('1000'))
        self.assertEqual(sorted(order.items.values_list('qty', flat=True)), [1, 1])
