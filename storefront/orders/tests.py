"""
Tests for order placement, totals, item chat, feedback and replacements
"""
from decimal import Decimal
from io import StringIO
from unittest.mock import patch

from django.core.management import call_command
from django.db import IntegrityError
from django.test import TestCase
from rest_framework import status

from storefront.core.exceptions import OrderCreationError
from storefront.core.models import AuditLog, User
from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from storefront.orders.models import Order, OrderItemMessage, OrderItemFeedback, OrderItemReplacement
from storefront.orders.numbering import (
    ORDER_NUMBER_ATTEMPTS, create_numbered_order, generate_item_code, generate_order_number,
)
from storefront.orders.services import add_order_items, box_price, create_order, recalculate_order_total
from storefront.orders.statuses import DEFAULT_STATUS, ORDER_STATUSES, get_status_config


class StatusTests(TestCase):

    def test_known_status(self):
        self.assertEqual(len(ORDER_STATUSES), 12)
        self.assertEqual(DEFAULT_STATUS, 'Новый')
        self.assertEqual(get_status_config('Отменен')['value'], 'Отменен')

    def test_unknown_status_falls_back(self):
        config = get_status_config('Потерян')
        self.assertEqual(config['label'], 'Потерян')
        self.assertEqual(config['description'], 'Unknown status')


class NumberingTests(TestCase):

    def test_first_number(self):
        self.assertEqual(generate_order_number(), '10000')

    def test_follows_highest_numeric(self):
        Order.objects.create(order_number='10041')
        Order.objects.create(order_number='99999-1234')
        Order.objects.create(order_number='ORD-ABC')
        self.assertEqual(generate_order_number(), '10042')

    def test_highest_is_numeric_not_lexicographic(self):
        Order.objects.create(order_number='99999')
        Order.objects.create(order_number='100000')
        Order.objects.create(order_number='42')
        self.assertEqual(generate_order_number(), '100001')

    def test_taken_number_is_retried(self):
        Order.objects.create(order_number='10000')
        with patch('storefront.orders.numbering.generate_order_number', side_effect=['10000', '10001']):
            order = create_numbered_order(phone='+79990001122')
        self.assertEqual(order.order_number, '10001')
        self.assertEqual(Order.objects.count(), 2)

    def test_retry_gives_up(self):
        Order.objects.create(order_number='10000')
        with patch('storefront.orders.numbering.generate_order_number', return_value='10000') as generator:
            with self.assertRaises(IntegrityError):
                create_numbered_order(phone='+79990001122')
        self.assertEqual(generator.call_count, ORDER_NUMBER_ATTEMPTS)
        self.assertEqual(Order.objects.count(), 1)

    def test_item_code_avoids_taken(self):
        taken = set()
        codes = {generate_item_code(taken) for _ in range(20)}
        self.assertEqual(len(codes), 20)
        self.assertEqual(codes, taken)
        self.assertTrue(all(len(c) == 6 and c.isalnum() and c.upper() == c for c in codes))


class OrderServiceTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.boots = TestDataFactory.create_product(price_pair=Decimal('500'),
                                                    sizes=[{'size': s} for s in ('36', '37', '38', '39')])
        self.slippers = TestDataFactory.create_product(price_pair=Decimal('300'), sizes=[])

    def test_box_price(self):
        self.assertEqual(box_price(Decimal('500'), [{'size': '36'}, {'size': '37'}]), Decimal('1000'))
        self.assertEqual(box_price(Decimal('300'), []), Decimal('300'))
        self.assertEqual(box_price(Decimal('300'), None), Decimal('300'))

    def test_create_order_totals(self):
        order = create_order(
            self.user,
            [{'slug': self.boots.slug, 'qty': 2}, {'productId': self.slippers.pk, 'qty': 1}],
            {'name': 'Иван', 'phone': '+79990001122'},
        )
        self.assertEqual(order.total, Decimal('4300'))
        self.assertEqual(order.subtotal, order.total)
        self.assertEqual(order.status, DEFAULT_STATUS)
        codes = list(order.items.values_list('item_code', flat=True))
        self.assertEqual(len(set(codes)), 2)

    def test_create_order_survives_number_collision(self):
        TestDataFactory.create_order(self.user)
        taken = Order.objects.get().order_number
        with patch('storefront.orders.numbering.generate_order_number', side_effect=[taken, '20000']):
            order = create_order(self.user, [{'slug': self.boots.slug, 'qty': 1}], {'phone': '+79990001122'})
        self.assertEqual(order.order_number, '20000')
        self.assertEqual(order.items.count(), 1)

    def test_add_items_to_existing_order(self):
        order = TestDataFactory.create_order(self.user, [self.slippers])
        added = add_order_items(order, [{'productId': self.boots.pk, 'qty': 2}])
        self.assertEqual(len(added), 1)
        self.assertEqual(added[0].price_box, Decimal('2000'))
        order.refresh_from_db()
        self.assertEqual(order.total, Decimal('4300'))
        self.assertEqual(order.items.count(), 2)

    def test_unknown_product(self):
        with self.assertRaises(OrderCreationError):
            create_order(self.user, [{'slug': 'missing', 'qty': 1}], {'phone': '+79990001122'})
        self.assertEqual(Order.objects.count(), 0)

    def test_recalculate_excludes_refused(self):
        order = TestDataFactory.create_order(self.user, [self.boots, self.slippers])
        refused = order.items.get(product=self.slippers)
        OrderItemFeedback.objects.create(item=refused, user=self.user,
                                         feedback_type=OrderItemFeedback.TYPE_WRONG_SIZE)
        self.assertEqual(recalculate_order_total(order), Decimal('2000'))
        order.refresh_from_db()
        self.assertEqual(order.total, Decimal('2000'))


class ClientOrderAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product(price_pair=Decimal('500'))
        self.transport = TestDataFactory.create_transport_company()

    def payload(self, **overrides):
        data = {
            'items': [{'slug': self.product.slug, 'qty': 3}],
            'customerInfo': {'name': 'Иван', 'phone': '+79990001122', 'address': 'Москва'},
            'transportCompanyId': self.transport.pk,
        }
        data.update(overrides)
        return data

    def test_create(self):
        response = self.client.post('/api/v1/orders/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        order = response.data['order']
        self.assertEqual(Decimal(order['total']), Decimal('3000'))
        self.assertEqual(order['fullName'], 'Иван')
        self.assertEqual(order['statusConfig']['value'], 'Новый')
        self.assertTrue(AuditLog.objects.filter(action='order_create').exists())

        response = self.client.get('/api/v1/orders/')
        self.assertEqual(len(response.data['orders']), 1)

    def test_validation_errors(self):
        for overrides in (
            {'items': []},
            {'items': [{'slug': self.product.slug, 'qty': 0}]},
            {'items': [{'qty': 1}]},
            {'customerInfo': {'name': 'Иван'}},
            {'transportCompanyId': None},
            {'transportCompanyId': 999999},
        ):
            response = self.client.post('/api/v1/orders/', self.payload(**overrides), format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, overrides)
            self.assertEqual(response.data['error'], 'Invalid order data')

    def test_unknown_product(self):
        response = self.client.post('/api/v1/orders/', self.payload(items=[{'slug': 'nope', 'qty': 1}]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Some products not found')

    def test_anonymous_rejected(self):
        self.client.logout()
        response = self.client.post('/api/v1/orders/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class OrderItemChatTests(TestCase):

    def setUp(self):
        self.owner = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.order = TestDataFactory.create_order(self.owner)
        self.item = self.order.items.first()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.owner)

    def test_post_and_list(self):
        url = f'/api/v1/order-items/{self.item.pk}/messages/'
        response = self.client.post(url, {'text': 'Когда отправка?'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['message']['sender'], 'client')

        response = self.client.get(url)
        self.assertEqual([m['text'] for m in response.data['messages']], ['Когда отправка?'])

    def test_empty_message_rejected(self):
        response = self.client.post(f'/api/v1/order-items/{self.item.pk}/messages/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_other_client_gets_404(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get(f'/api/v1/order-items/{self.item.pk}/messages/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_unread_counts(self):
        OrderItemMessage.objects.create(item=self.item, user=self.admin, text='Нет 37 размера')
        OrderItemMessage.objects.create(item=self.item, user=self.admin, text='Есть замена')
        OrderItemMessage.objects.create(item=self.item, user=self.owner, text='Ок')
        url = f'/api/v1/orders/{self.order.pk}/unread-counts/'

        response = self.client.get(url)
        self.assertEqual(response.data['unreadCounts'][str(self.item.pk)], {'unreadCount': 2, 'totalMessages': 2})

        self.client.get(f'/api/v1/order-items/{self.item.pk}/messages/')
        response = self.client.get(url)
        self.assertEqual(response.data['unreadCounts'][str(self.item.pk)]['unreadCount'], 0)

    def test_unread_counts_foreign_order(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get(f'/api/v1/orders/{self.order.pk}/unread-counts/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class FeedbackAPITests(TestCase):

    def setUp(self):
        self.owner = TestDataFactory.create_user()
        kept = TestDataFactory.create_product(price_pair=Decimal('500'))
        refused = TestDataFactory.create_product(price_pair=Decimal('100'))
        self.order = TestDataFactory.create_order(self.owner, [kept, refused])
        self.item = self.order.items.get(product=refused)
        self.url = f'/api/v1/order-items/{self.item.pk}/feedback/'
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.owner)

    def test_refusal_recalculates_total(self):
        self.assertEqual(self.order.total, Decimal('1200'))
        response = self.client.post(self.url, {'feedbackType': 'WRONG_ITEM', 'refusalReason': 'Другой цвет'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['feedback']['type'], 'WRONG_ITEM')
        self.order.refresh_from_db()
        self.assertEqual(self.order.total, Decimal('1000'))

    def test_agree_replacement_keeps_total(self):
        self.client.post(self.url, {'feedbackType': 'AGREE_REPLACEMENT'}, format='json')
        self.order.refresh_from_db()
        self.assertEqual(self.order.total, Decimal('1200'))

    def test_duplicate_is_conflict(self):
        self.client.post(self.url, {'feedbackType': 'WRONG_SIZE'}, format='json')
        response = self.client.post(self.url, {'feedbackType': 'WRONG_SIZE'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_invalid_type(self):
        response = self.client.post(self.url, {'feedbackType': 'TOO_EXPENSIVE'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list(self):
        self.client.post(self.url, {'feedbackType': 'WRONG_SIZE'}, format='json')
        response = self.client.get(self.url)
        self.assertEqual(len(response.data['feedbacks']), 1)


class ReplacementAPITests(TestCase):

    def setUp(self):
        self.owner = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.order = TestDataFactory.create_order(self.owner)
        self.item = self.order.items.first()
        self.admin_client = AuthenticatedAPIClient()
        self.admin_client.authenticate_user(self.admin)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.owner)
        self.url = f'/api/v1/admin/order-items/{self.item.pk}/replacement/'

    def propose(self, **data):
        payload = {'replacementImageUrl': 'https://cdn.example.com/r.jpg', 'adminComment': 'Такая же, но черная'}
        payload.update(data)
        return self.admin_client.post(self.url, payload, format='json')

    def test_propose_posts_chat_message(self):
        response = self.propose()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        message = OrderItemMessage.objects.get(item=self.item)
        self.assertEqual(message.text, 'Такая же, но черная')
        self.assertEqual(message.attachments[0]['url'], 'https://cdn.example.com/r.jpg')
        self.assertTrue(AuditLog.objects.filter(action='replacement_create').exists())

    def test_image_required(self):
        response = self.propose(replacementImageUrl=None)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_order_without_client(self):
        Order.objects.filter(pk=self.order.pk).update(user=None)
        response = self.propose()
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_second_pending_is_conflict(self):
        self.propose()
        response = self.propose()
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertIn('existingReplacement', response.data)

    def test_client_accepts(self):
        self.propose()
        response = self.client.post(f'/api/v1/order-items/{self.item.pk}/replacement/response/',
                                    {'status': 'ACCEPTED', 'clientComment': 'Беру'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        replacement = OrderItemReplacement.objects.get(item=self.item)
        self.assertEqual(replacement.status, OrderItemReplacement.STATUS_ACCEPTED)
        self.assertEqual(replacement.client_comment, 'Беру')

    def test_response_without_pending(self):
        response = self.client.post(f'/api/v1/order-items/{self.item.pk}/replacement/response/',
                                    {'status': 'REJECTED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_response_invalid_status(self):
        response = self.client.post(f'/api/v1/order-items/{self.item.pk}/replacement/response/',
                                    {'status': 'PENDING'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class AdminOrderAPITests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.owner = TestDataFactory.create_user()
        self.gruzchik = TestDataFactory.create_user(role=User.ROLE_GRUZCHIK)
        self.order = TestDataFactory.create_order(self.owner)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_list_includes_unread_and_gruzchiks(self):
        item = self.order.items.first()
        OrderItemMessage.objects.create(item=item, user=self.owner, text='Вопрос')
        OrderItemMessage.objects.create(item=item, user=self.owner, text='Служебное', is_service=True)
        response = self.client.get('/api/v1/admin/orders/')
        self.assertEqual(response.data['orders'][0]['unreadMessageCount'], 1)
        self.assertEqual([g['id'] for g in response.data['gruzchiks']], [self.gruzchik.pk])

    def test_update_status_gruzchik_payment_label(self):
        response = self.client.post('/api/v1/admin/orders/', {
            'id': self.order.pk, 'status': 'Куплен', 'gruzchikId': self.gruzchik.pk,
            'payment': '1500.50', 'label': 'VIP',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.order.refresh_from_db()
        self.owner.refresh_from_db()
        self.assertEqual(self.order.status, 'Куплен')
        self.assertEqual(self.order.gruzchik, self.gruzchik)
        self.assertEqual(self.order.payment, Decimal('1500.50'))
        self.assertEqual(self.owner.label, 'VIP')
        self.assertTrue(AuditLog.objects.filter(action='order_update').exists())

    def test_update_rejects_bad_input(self):
        cases = (
            ({}, status.HTTP_400_BAD_REQUEST),
            ({'id': 999999}, status.HTTP_404_NOT_FOUND),
            ({'id': self.order.pk, 'status': 'Потерян'}, status.HTTP_400_BAD_REQUEST),
            ({'id': self.order.pk, 'gruzchikId': self.owner.pk}, status.HTTP_400_BAD_REQUEST),
            ({'id': self.order.pk, 'gruzchikId': 'abc'}, status.HTTP_400_BAD_REQUEST),
            ({'id': self.order.pk, 'gruzchikId': {'id': 1}}, status.HTTP_400_BAD_REQUEST),
            ({'id': self.order.pk, 'payment': 'много'}, status.HTTP_400_BAD_REQUEST),
        )
        for payload, expected in cases:
            response = self.client.post('/api/v1/admin/orders/', payload, format='json')
            self.assertEqual(response.status_code, expected, payload)

    def test_unassign_gruzchik(self):
        Order.objects.filter(pk=self.order.pk).update(gruzchik=self.gruzchik)
        self.client.post('/api/v1/admin/orders/', {'id': self.order.pk, 'gruzchikId': ''}, format='json')
        self.order.refresh_from_db()
        self.assertIsNone(self.order.gruzchik)

    def test_detail(self):
        response = self.client.get(f'/api/v1/admin/orders/{self.order.pk}/')
        self.assertEqual(response.data['order']['orderNumber'], self.order.order_number)
        response = self.client.get('/api/v1/admin/orders/999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_admin_reading_marks_messages_read(self):
        item = self.order.items.first()
        message = OrderItemMessage.objects.create(item=item, user=self.owner, text='Вопрос')
        self.client.get(f'/api/v1/admin/order-items/{item.pk}/messages/')
        self.assertTrue(message.read_by.filter(pk=self.admin.pk).exists())

    def test_add_items(self):
        product = TestDataFactory.create_product(price_pair=Decimal('100'), sizes=[{'size': '40'}])
        before = self.order.total
        response = self.client.post(f'/api/v1/admin/orders/{self.order.pk}/items/', {
            'items': [{'slug': product.slug, 'qty': 3}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['order']['items']), 2)
        self.order.refresh_from_db()
        self.assertEqual(self.order.total, before + Decimal('300'))
        self.assertTrue(AuditLog.objects.filter(action='order_items_add').exists())

    def test_add_items_errors(self):
        url = f'/api/v1/admin/orders/{self.order.pk}/items/'
        for payload in ({}, {'items': []}, {'items': [{'qty': 1}]}, {'items': [{'slug': 'missing', 'qty': 1}]}):
            response = self.client.post(url, payload, format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, payload)
        self.assertEqual(self.order.items.count(), 1)
        response = self.client.post('/api/v1/admin/orders/999999/items/', {'items': [{'slug': 'x', 'qty': 1}]},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_edit_and_delete_message(self):
        item = self.order.items.first()
        message = OrderItemMessage.objects.create(item=item, user=self.owner, text='Вопрос')
        url = f'/api/v1/admin/order-items/{item.pk}/messages/{message.pk}/'

        response = self.client.patch(url, {'text': '  Исправлено  '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message']['text'], 'Исправлено')
        message.refresh_from_db()
        self.assertEqual(message.text, 'Исправлено')

        response = self.client.patch(url, {'text': '   '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.delete(url)
        self.assertTrue(response.data['success'])
        self.assertFalse(OrderItemMessage.objects.filter(pk=message.pk).exists())
        self.assertTrue(AuditLog.objects.filter(action='message_delete').exists())

        response = self.client.delete(url)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_message_must_belong_to_item(self):
        other_order = TestDataFactory.create_order(self.owner)
        message = OrderItemMessage.objects.create(item=other_order.items.first(), user=self.owner, text='Чужое')
        item = self.order.items.first()
        response = self.client.patch(f'/api/v1/admin/order-items/{item.pk}/messages/{message.pk}/',
                                     {'text': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        response = self.client.delete(f'/api/v1/admin/order-items/999999/messages/{message.pk}/')
        self.assertEqual(response.data['error'], 'Order item not found')

    def test_message_edit_forbidden_for_client(self):
        item = self.order.items.first()
        message = OrderItemMessage.objects.create(item=item, user=self.owner, text='Вопрос')
        self.client.authenticate_user(self.owner)
        response = self.client.delete(f'/api/v1/admin/order-items/{item.pk}/messages/{message.pk}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class GruzchikOrderAPITests(TestCase):

    def setUp(self):
        self.gruzchik = TestDataFactory.create_user(role=User.ROLE_GRUZCHIK)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.gruzchik)
        self.orders = [TestDataFactory.create_order(gruzchik=self.gruzchik) for _ in range(3)]
        TestDataFactory.create_order(gruzchik=self.gruzchik, status='Отправлен')
        self.foreign = TestDataFactory.create_order()

    def test_pagination(self):
        response = self.client.get('/api/v1/gruzchik/orders/', {'page': 2, 'limit': 3})
        self.assertEqual(len(response.data['orders']), 1)
        self.assertEqual(response.data['pagination'], {'page': 2, 'limit': 3, 'total': 4, 'totalPages': 2})

    def test_status_filter(self):
        response = self.client.get('/api/v1/gruzchik/orders/', {'status': 'Отправлен'})
        self.assertEqual(response.data['pagination']['total'], 1)

    def test_messages_scoped_to_assigned_orders(self):
        own_item = self.orders[0].items.first()
        response = self.client.post(f'/api/v1/gruzchik/order-items/{own_item.pk}/messages/',
                                    {'text': 'Забрал'}, format='json')
        self.assertEqual(response.data['message']['sender'], 'gruzchik')
        foreign_item = self.foreign.items.first()
        response = self.client.get(f'/api/v1/gruzchik/order-items/{foreign_item.pk}/messages/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_client_forbidden(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/gruzchik/orders/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class RecalculateOrderTotalsCommandTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.order = TestDataFactory.create_order(self.user, [
            TestDataFactory.create_product(price_pair=Decimal('500')),
            TestDataFactory.create_product(price_pair=Decimal('100')),
        ])
        refused = self.order.items.get(price_box=Decimal('200'))
        OrderItemFeedback.objects.create(item=refused, user=self.user,
                                         feedback_type=OrderItemFeedback.TYPE_WRONG_ITEM)
        TestDataFactory.create_order()

    def test_updates_changed_orders(self):
        out = StringIO()
        call_command('recalculate_order_totals', stdout=out)
        output = out.getvalue()
        self.assertIn(f'Order {self.order.order_number}: 1200.00 -> 1000.00 (-200.00)', output)
        self.assertIn('Orders updated: 1', output)
        self.assertIn('Orders unchanged: 1', output)
        self.order.refresh_from_db()
        self.assertEqual(self.order.total, Decimal('1000'))

    def test_dry_run_saves_nothing(self):
        out = StringIO()
        call_command('recalculate_order_totals', dry_run=True, stdout=out)
        self.assertIn('Dry run', out.getvalue())
        self.order.refresh_from_db()
        self.assertEqual(self.order.total, Decimal('1200'))
