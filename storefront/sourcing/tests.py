"""
Tests for supplier message intake, AI grouping and draft conversion
"""
import json
import os
import tempfile
from io import StringIO
from unittest.mock import patch, MagicMock

import requests
from django.core.management import call_command
from django.db import IntegrityError
from django.test import TestCase, override_settings
from rest_framework import status

from storefront.catalog.models import Category, Product
from storefront.core.exceptions import DraftConversionError, GroqAPIError
from storefront.core.models import AuditLog
from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from storefront.sourcing.conversion import (
    convert_draft_to_product, process_draft_images, process_draft_sizes,
)
from storefront.sourcing.groq import GroqClient, is_groq_retryable_error, with_retry
from storefront.sourcing.grouping import create_draft_from_group, group_provider_messages, parse_groups
from storefront.sourcing.models import DraftProduct, DraftProductImage, WhatsAppMessage
from storefront.sourcing.webhook import extract_normalized_phone, extract_text, handle_incoming_message, parse_timestamp

TARGET_GROUP = '120363000000000000@g.us'


def http_error(status_code, message='error'):
    response = MagicMock()
    response.status_code = status_code
    return requests.HTTPError(message, response=response)


def groq_response(status_code=200, content='{}', error=None):
    response = MagicMock()
    response.status_code = status_code
    if error is not None:
        response.json.return_value = {'error': error}
    else:
        response.json.return_value = {'choices': [{'message': {'content': content}}]}
    response.text = ''
    return response


class DraftConversionTests(TestCase):

    def setUp(self):
        self.category = TestDataFactory.create_category()
        self.provider = TestDataFactory.create_provider()

    def test_process_images_and_sizes(self):
        images = [
            {'url': 'a', 'sort': 2},
            {'url': 'b', 'sort': 1, 'is_active': False},
            {'url': 'c', 'sort': 5, 'is_primary': True},
            {'url': 'd', 'sort': 0},
        ]
        self.assertEqual([i['url'] for i in process_draft_images(images)], ['c', 'd', 'a'])
        self.assertEqual(
            process_draft_sizes([{'name': 'M', 'stock': 3}, {}, '40']),
            [{'size': 'M', 'count': 3}, {'size': 'Unknown', 'count': 1}, {'size': '40', 'count': 1}],
        )
        self.assertEqual(process_draft_sizes(None), [])

    def test_convert_creates_product_and_marks_draft(self):
        draft = TestDataFactory.create_draft(name='Кеды', category=self.category, provider=self.provider,
                                             source=[11, 12])
        product = convert_draft_to_product(draft)

        self.assertEqual(product.slug, f'kedy-{draft.pk}')
        self.assertEqual(product.category, self.category)
        self.assertEqual(product.provider, self.provider)
        self.assertEqual(product.source_message_ids, [11, 12])
        self.assertEqual(product.sizes, [{'size': '38', 'count': 1}])
        self.assertEqual(product.images.count(), 1)
        self.assertTrue(product.images.first().is_primary)

        draft.refresh_from_db()
        self.assertEqual(draft.status, DraftProduct.STATUS_PROCESSED)
        self.assertTrue(draft.is_deleted)

    def test_second_conversion_is_rejected(self):
        draft = TestDataFactory.create_draft(category=self.category)
        convert_draft_to_product(draft)
        with self.assertRaises(DraftConversionError):
            convert_draft_to_product(draft)
        self.assertEqual(Product.objects.count(), 1)

    def test_missing_draft(self):
        with self.assertRaises(DraftConversionError):
            convert_draft_to_product(None)

    def test_requires_category(self):
        draft = TestDataFactory.create_draft()
        with self.assertRaises(DraftConversionError):
            convert_draft_to_product(draft)

    def test_requires_active_images(self):
        draft = TestDataFactory.create_draft(category=self.category)
        draft.images.update(is_active=False)
        with self.assertRaisesMessage(DraftConversionError, 'No active images found'):
            convert_draft_to_product(draft)
        draft.refresh_from_db()
        self.assertEqual(draft.status, DraftProduct.STATUS_DRAFT)

    def test_taken_slug_gets_suffix(self):
        draft = TestDataFactory.create_draft(name='Кеды', category=self.category)
        TestDataFactory.create_product(slug=f'kedy-{draft.pk}')
        product = convert_draft_to_product(draft)
        self.assertEqual(product.slug, f'kedy-{draft.pk}-1')


class GroqRetryTests(TestCase):

    def test_retryable_errors(self):
        self.assertTrue(is_groq_retryable_error(http_error(429)))
        self.assertTrue(is_groq_retryable_error(http_error(503)))
        self.assertTrue(is_groq_retryable_error(requests.Timeout('read timed out')))
        self.assertTrue(is_groq_retryable_error(GroqAPIError('Model is over capacity')))
        self.assertTrue(is_groq_retryable_error(GroqAPIError('x', status_code=500)))
        self.assertFalse(is_groq_retryable_error(http_error(400, 'bad request')))
        self.assertFalse(is_groq_retryable_error(None))

    def test_backoff_delays(self):
        delays = []
        calls = {'n': 0}

        def flaky():
            calls['n'] += 1
            if calls['n'] < 4:
                raise http_error(429)
            return 'ok'

        self.assertEqual(with_retry(flaky, base_delay=2.0, max_delay=5.0, sleep=delays.append), 'ok')
        self.assertEqual(delays, [2.0, 4.0, 5.0])

    def test_gives_up_after_max_retries(self):
        delays = []

        def always_fails():
            raise http_error(500)

        with self.assertRaises(requests.HTTPError):
            with_retry(always_fails, max_retries=2, sleep=delays.append)
        self.assertEqual(len(delays), 2)

    def test_non_retryable_propagates_immediately(self):
        delays = []

        def bad_request():
            raise http_error(400)

        with self.assertRaises(requests.HTTPError):
            with_retry(bad_request, sleep=delays.append)
        self.assertEqual(delays, [])


class GroqClientTests(TestCase):

    @override_settings(GROQ_API_KEY='')
    def test_requires_api_key(self):
        with self.assertRaises(GroqAPIError):
            GroqClient()

    def test_chat_completion_json_mode(self):
        session = MagicMock()
        session.post.return_value = groq_response(content='{"groups": []}')
        client = GroqClient(api_key='key', session=session)

        self.assertEqual(client.chat_completion([{'role': 'user', 'content': 'hi'}], json_mode=True), '{"groups": []}')
        payload = session.post.call_args.kwargs['json']
        self.assertEqual(payload['response_format'], {'type': 'json_object'})
        self.assertEqual(session.post.call_args.kwargs['headers']['Authorization'], 'Bearer key')

    def test_rate_limit_is_retried(self):
        session = MagicMock()
        session.post.side_effect = [
            groq_response(429, error={'message': 'Rate limit reached', 'type': 'tokens'}),
            groq_response(content='done'),
        ]
        client = GroqClient(api_key='key', session=session)
        self.assertEqual(client.chat_completion([], base_delay=0), 'done')
        self.assertEqual(session.post.call_count, 2)

    def test_client_error_raises(self):
        session = MagicMock()
        session.post.return_value = groq_response(401, error={'message': 'Invalid API Key'})
        client = GroqClient(api_key='key', session=session)
        with self.assertRaises(GroqAPIError) as ctx:
            client.chat_completion([])
        self.assertEqual(ctx.exception.status_code, 401)
        self.assertEqual(session.post.call_count, 1)


class GroupingTests(TestCase):

    def setUp(self):
        self.provider = TestDataFactory.create_provider(phone='+79991234567')
        self.text = TestDataFactory.create_whatsapp_message(self.provider, text='Кеды 1500 36-41', timestamp=100)
        self.photo = TestDataFactory.create_whatsapp_message(
            self.provider, media_url='https://cdn.example.com/wa/1.jpg', timestamp=110)
        self.lonely = TestDataFactory.create_whatsapp_message(self.provider, text='Привет', timestamp=500)

    def test_parse_groups_rejects_malformed(self):
        with self.assertRaises(GroqAPIError):
            parse_groups('not json')
        with self.assertRaises(GroqAPIError):
            parse_groups('{"items": []}')

    def test_group_needs_image_and_text(self):
        messages = {m.pk: m for m in (self.text, self.photo, self.lonely)}
        self.assertIsNone(create_draft_from_group(self.provider, {'messageIds': [self.lonely.pk]}, messages))

    def test_group_provider_messages_creates_drafts(self):
        client = MagicMock()
        client.chat_completion.return_value = json.dumps({'groups': [
            {'groupId': 'g1', 'messageIds': [str(self.text.pk), str(self.photo.pk)],
             'name': 'Кеды', 'pricePair': '1 500 руб', 'sizes': [{'size': '36', 'count': 1}]},
            {'groupId': 'g2', 'messageIds': [self.lonely.pk]},
        ]})

        drafts = group_provider_messages(self.provider, client=client)

        self.assertEqual(len(drafts), 1)
        draft = drafts[0]
        self.assertEqual(draft.name, 'Кеды')
        self.assertEqual(str(draft.price_pair), '1500')
        self.assertEqual(draft.source, [self.text.pk, self.photo.pk])
        self.assertEqual(draft.description, 'Кеды 1500 36-41')
        image = DraftProductImage.objects.get(draft=draft)
        self.assertTrue(image.is_primary)

        self.text.refresh_from_db()
        self.lonely.refresh_from_db()
        self.assertTrue(self.text.processed)
        self.assertTrue(self.text.ai_group_id.startswith('grp-'))
        self.assertEqual(self.text.draft_product, draft)
        self.assertFalse(self.lonely.processed)

    def test_no_messages_skips_model_call(self):
        WhatsAppMessage.objects.update(processed=True)
        client = MagicMock()
        self.assertEqual(group_provider_messages(self.provider, client=client), [])
        client.chat_completion.assert_not_called()

    def test_group_messages_command(self):
        fake = MagicMock()
        fake.chat_completion.return_value = json.dumps({'groups': [
            {'messageIds': [self.text.pk, self.photo.pk], 'name': 'Кеды'},
        ]})
        out = StringIO()
        with patch('storefront.sourcing.management.commands.group_messages.GroqClient', return_value=fake):
            call_command('group_messages', stdout=out)
        self.assertIn('Drafts created: 1', out.getvalue())


@override_settings(GREEN_API_TARGET_GROUP_ID=TARGET_GROUP)
class WebhookTests(TestCase):

    def payload(self, id_message='wamid-1', chat_id=TARGET_GROUP, **message_data):
        return {
            'typeWebhook': 'incomingMessageReceived',
            'idMessage': id_message,
            'timestamp': 1700000000,
            'senderData': {'chatId': chat_id, 'sender': '79991234567@c.us', 'senderName': 'Ашот'},
            'messageData': message_data or {'typeMessage': 'textMessage',
                                            'textMessageData': {'textMessage': 'Новинка'}},
        }

    def test_extract_helpers(self):
        self.assertEqual(extract_normalized_phone('79991234567@c.us'), '+79991234567')
        self.assertIsNone(extract_normalized_phone(None))
        self.assertEqual(extract_text({'extendedTextMessageData': {'text': 'hi'}}), 'hi')
        self.assertIsNone(extract_text({}))

    def test_stores_message_with_provider(self):
        provider = TestDataFactory.create_provider(phone='+79991234567')
        message = handle_incoming_message(self.payload())
        self.assertEqual(message.text, 'Новинка')
        self.assertEqual(message.sender, '+79991234567')
        self.assertEqual(message.provider, provider)
        self.assertEqual(message.timestamp, 1700000000)

    def test_file_message_media(self):
        message = handle_incoming_message(self.payload(
            typeMessage='imageMessage',
            fileMessageData={'downloadUrl': 'https://cdn.example.com/1.jpg', 'mimeType': 'image/jpeg',
                             'caption': 'Цена 900'},
        ))
        self.assertEqual(message.media_url, 'https://cdn.example.com/1.jpg')
        self.assertEqual(message.media_caption, 'Цена 900')
        self.assertIsNone(message.provider)

    def test_duplicate_and_foreign_chat_are_skipped(self):
        self.assertIsNotNone(handle_incoming_message(self.payload()))
        self.assertIsNone(handle_incoming_message(self.payload()))
        self.assertIsNone(handle_incoming_message(self.payload(id_message='wamid-2', chat_id='other@g.us')))
        self.assertEqual(WhatsAppMessage.objects.count(), 1)

    def test_other_webhook_types_ignored(self):
        self.assertIsNone(handle_incoming_message({'typeWebhook': 'stateInstanceChanged'}))

    def test_non_numeric_timestamp_stored_as_zero(self):
        self.assertEqual(parse_timestamp('1700000000'), 1700000000)
        self.assertEqual(parse_timestamp(None), 0)
        payload = self.payload()
        payload['timestamp'] = 'yesterday'
        message = handle_incoming_message(payload)
        self.assertEqual(message.timestamp, 0)

    def test_concurrent_duplicate_insert_is_skipped(self):
        with patch('storefront.sourcing.webhook.WhatsAppMessage.objects.create',
                   side_effect=IntegrityError('UNIQUE constraint failed: whatsapp_messages.wa_message_id')):
            self.assertIsNone(handle_incoming_message(self.payload()))
        self.assertEqual(WhatsAppMessage.objects.count(), 0)

    def test_endpoint_tolerates_bad_timestamp(self):
        payload = self.payload()
        payload['timestamp'] = {'sec': 1}
        response = AuthenticatedAPIClient().post('/api/v1/webhooks/green-api/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(WhatsAppMessage.objects.get(wa_message_id='wamid-1').timestamp, 0)

    def test_endpoint(self):
        client = AuthenticatedAPIClient()
        response = client.get('/api/v1/webhooks/green-api/')
        self.assertEqual(response.data['message'], 'Green API webhook endpoint is active')
        response = client.post('/api/v1/webhooks/green-api/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(WhatsAppMessage.objects.filter(wa_message_id='wamid-1').exists())


class DraftAdminAPITests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.root = TestDataFactory.create_category(segment='obuv', sort=1)

    def test_list_hides_deleted_and_filters_status(self):
        TestDataFactory.create_draft()
        TestDataFactory.create_draft(status=DraftProduct.STATUS_APPROVED)
        TestDataFactory.create_draft(is_deleted=True)
        response = self.client.get('/api/v1/admin/drafts/')
        self.assertEqual(response.data['count'], 2)
        response = self.client.get('/api/v1/admin/drafts/', {'status': 'approved'})
        self.assertEqual(response.data['count'], 1)

    def test_list_bad_pagination_falls_back(self):
        TestDataFactory.create_draft()
        for params in ({'page_size': 'abc'}, {'page_size': 0}, {'page': 'last'}):
            response = self.client.get('/api/v1/admin/drafts/', params)
            self.assertEqual(response.status_code, status.HTTP_200_OK, params)
            self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/admin/drafts/', {'page_size': 5000})
        self.assertEqual(response.data['page_size'], 100)

    def test_approve_defaults_to_first_root(self):
        draft = TestDataFactory.create_draft()
        response = self.client.post('/api/v1/admin/drafts/approve/', {'ids': [draft.pk, 999999]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['results'][1]['error'], 'Draft not found')
        draft.refresh_from_db()
        self.assertEqual(draft.status, DraftProduct.STATUS_APPROVED)
        self.assertEqual(draft.category, self.root)

    def test_approve_requires_ids(self):
        response = self.client.post('/api/v1/admin/drafts/approve/', {'ids': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_approve_without_root_category(self):
        Category.objects.all().delete()
        draft = TestDataFactory.create_draft()
        response = self.client.post('/api/v1/admin/drafts/approve/', {'ids': [draft.pk]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_convert_reports_per_draft(self):
        good = TestDataFactory.create_draft(category=self.root)
        bad = TestDataFactory.create_draft(category=self.root, with_image=False)
        response = self.client.post('/api/v1/admin/drafts/convert-to-catalog/',
                                    {'ids': [good.pk, bad.pk]}, format='json')
        self.assertEqual(response.data['converted'], 1)
        self.assertEqual(response.data['failed'], 1)
        self.assertIn('productId', response.data['results'][0])
        self.assertEqual(response.data['results'][1]['error'], 'No active images found')
        self.assertTrue(AuditLog.objects.filter(action='draft_convert').exists())

    def test_client_cannot_convert(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.post('/api/v1/admin/drafts/convert-to-catalog/', {'ids': [1]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class MessageAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_admin())
        self.provider = TestDataFactory.create_provider()

    def test_source_messages_ordered(self):
        late = TestDataFactory.create_whatsapp_message(self.provider, text='late', timestamp=200)
        early = TestDataFactory.create_whatsapp_message(self.provider, text='early', timestamp=100)
        product = TestDataFactory.create_product(source_message_ids=[late.pk, early.pk])
        response = self.client.get(f'/api/v1/products/{product.pk}/source-messages/')
        self.assertEqual([m['text'] for m in response.data['messages']], ['early', 'late'])
        self.assertEqual(response.data['messages'][0]['provider'], {'name': self.provider.name})

    def test_source_messages_unknown_product(self):
        response = self.client.get('/api/v1/products/999999/source-messages/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_group_messages_pagination(self):
        for ts in range(3):
            TestDataFactory.create_whatsapp_message(self.provider, text=str(ts), timestamp=ts, ai_group_id='grp-abc')
        response = self.client.get('/api/v1/messages/group/grp-abc/', {'limit': 2})
        self.assertEqual([m['text'] for m in response.data['messages']], ['0', '1'])
        self.assertEqual(response.data['pagination']['total'], 3)
        self.assertTrue(response.data['pagination']['hasMore'])
        self.assertIsNone(response.data['draft'])


class ImportWhatsAppMessagesCommandTests(TestCase):

    def write_csv(self, text):
        handle, path = tempfile.mkstemp(suffix='.csv')
        with os.fdopen(handle, 'w', encoding='utf-8') as f:
            f.write(text)
        self.addCleanup(os.remove, path)
        return path

    def test_imports_and_skips_duplicates(self):
        provider = TestDataFactory.create_provider()
        TestDataFactory.create_whatsapp_message(wa_message_id='dup')
        path = self.write_csv(
            'waMessageId,chatId,from,text,timestamp,fromMe,processed,rawPayload,providerId\n'
            f'm1,chat,+79991234567,Привет,1700000000,false,TRUE,"{{""a"": 1}}",{provider.pk}\n'
            'dup,chat,,,1,false,false,,\n'
            'm2,,,,1,false,false,,\n'
            'm3,chat,,,abc,true,false,[1],999999\n'
        )
        out = StringIO()
        call_command('import_whatsapp_messages', csv_file=path, batch_size=1, stdout=out)

        self.assertIn('Imported: 2', out.getvalue())
        self.assertIn('Skipped: 2', out.getvalue())
        m1 = WhatsAppMessage.objects.get(wa_message_id='m1')
        self.assertTrue(m1.processed)
        self.assertEqual(m1.raw_payload, {'a': 1})
        self.assertEqual(m1.provider, provider)
        m3 = WhatsAppMessage.objects.get(wa_message_id='m3')
        self.assertEqual(m3.timestamp, 0)
        self.assertTrue(m3.from_me)
        self.assertEqual(m3.raw_payload, {'value': [1]})
        self.assertIsNone(m3.provider_id)

    def test_missing_file(self):
        out = StringIO()
        call_command('import_whatsapp_messages', csv_file='/nonexistent/messages.csv', stdout=out)
        self.assertIn('CSV file not found', out.getvalue())
