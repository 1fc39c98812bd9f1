"""
Tests for users, phone/OTP authentication, roles and the audit trail
"""
from unittest.mock import patch, MagicMock

import requests
from django.core.cache import cache
from django.test import TestCase, override_settings
from rest_framework import status
from rest_framework_simplejwt.tokens import AccessToken

from storefront.core.models import User, AuditLog
from storefront.core.sms import generate_otp_code, send_sms
from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from storefront.core.utils import create_audit_log, normalize_phone_to_e164


class PhoneNormalizationTests(TestCase):

    def test_russian_prefixes(self):
        self.assertEqual(normalize_phone_to_e164('8 (999) 123-45-67'), '+79991234567')
        self.assertEqual(normalize_phone_to_e164('+7 999 123 45 67'), '+79991234567')
        self.assertEqual(normalize_phone_to_e164('9991234567'), '+79991234567')

    def test_empty(self):
        self.assertEqual(normalize_phone_to_e164(None), '')
        self.assertEqual(normalize_phone_to_e164('---'), '')


class AuditLogTests(TestCase):

    def test_creates_entry(self):
        user = TestDataFactory.create_admin()
        log = create_audit_log(action='create', model_name='Category', object_id=5,
                               user=user, object_name='Обувь', changes={'path': 'obuv'})
        self.assertIsNotNone(log)
        self.assertEqual(log.object_id, '5')
        self.assertEqual(log.user, user)

    def test_missing_fields_skipped(self):
        self.assertIsNone(create_audit_log(action='create', model_name=None, object_id=1))
        self.assertEqual(AuditLog.objects.count(), 0)

    def test_never_raises(self):
        with patch('storefront.core.utils.AuditLog.objects.create', side_effect=RuntimeError('db down')):
            self.assertIsNone(create_audit_log(action='create', model_name='Order', object_id=1))


class SmsTests(TestCase):

    @override_settings(SMS_USE_CONSOLE=True)
    def test_console_mode_does_not_call_provider(self):
        with patch('storefront.core.sms.requests.get') as mock_get:
            self.assertTrue(send_sms('+79991234567', 'Код: 1234'))
        mock_get.assert_not_called()

    @override_settings(SMS_USE_CONSOLE=False, SMS_API_KEY='key')
    def test_provider_rejection(self):
        response = MagicMock()
        response.json.return_value = {'status': 'ERROR'}
        with patch('storefront.core.sms.requests.get', return_value=response):
            self.assertFalse(send_sms('+79991234567', 'Код: 1234'))

    @override_settings(SMS_USE_CONSOLE=False, SMS_API_KEY='key')
    def test_network_error(self):
        with patch('storefront.core.sms.requests.get', side_effect=requests.ConnectionError('down')):
            self.assertFalse(send_sms('+79991234567', 'Код: 1234'))


class LoginTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(phone='+79991112233', password='secret123')

    def test_login_success_returns_tokens_with_role(self):
        response = self.client.post('/api/v1/auth/login/', {'phone': '89991112233', 'password': 'secret123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['ok'])
        token = AccessToken(response.data['access'])
        self.assertEqual(token['role'], User.ROLE_CLIENT)
        self.assertEqual(token['phone'], '+79991112233')

    def test_wrong_password(self):
        response = self.client.post('/api/v1/auth/login/', {'phone': '+79991112233', 'password': 'nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_missing_fields(self):
        response = self.client.post('/api/v1/auth/login/', {'phone': '+79991112233'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_provider_phone_creates_provider_user(self):
        provider = TestDataFactory.create_provider(phone='+79995554433')
        response = self.client.post('/api/v1/auth/login/', {'phone': '+79995554433', 'password': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        user = User.objects.get(phone='+79995554433')
        self.assertEqual(user.role, User.ROLE_PROVIDER)
        self.assertEqual(user.provider, provider)

    def test_unknown_phone(self):
        response = self.client.post('/api/v1/auth/login/', {'phone': '+79990000001', 'password': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    @override_settings(ADMIN_PHONE='+79991112233')
    def test_admin_phone_is_promoted(self):
        self.client.post('/api/v1/auth/login/', {'phone': '+79991112233', 'password': 'secret123'}, format='json')
        self.user.refresh_from_db()
        self.assertEqual(self.user.role, User.ROLE_ADMIN)


@override_settings(SMS_USE_CONSOLE=True)
class OtpTests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()

    def _request_code(self, phone='+79993334455'):
        with patch('storefront.core.views.generate_otp_code', return_value='4321'):
            return self.client.post('/api/v1/auth/request-otp/', {'phone': phone}, format='json')

    def test_full_flow_creates_client(self):
        self.assertEqual(self._request_code().status_code, status.HTTP_200_OK)
        response = self.client.post('/api/v1/auth/verify-otp/', {'phone': '+79993334455', 'code': '4321'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['role'], User.ROLE_CLIENT)
        self.assertTrue(User.objects.filter(phone='+79993334455').exists())

    def test_code_is_single_use(self):
        self._request_code()
        self.client.post('/api/v1/auth/verify-otp/', {'phone': '+79993334455', 'code': '4321'}, format='json')
        response = self.client.post('/api/v1/auth/verify-otp/', {'phone': '+79993334455', 'code': '4321'}, format='json')
        self.assertEqual(response.data['error'], 'Код истёк')

    def test_wrong_code(self):
        self._request_code()
        response = self.client.post('/api/v1/auth/verify-otp/', {'phone': '+79993334455', 'code': '1111'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Неверный код')

    def test_code_burned_after_too_many_wrong_guesses(self):
        self._request_code()
        for guess in ('0000', '0001', '0002', '0003'):
            response = self.client.post('/api/v1/auth/verify-otp/', {'phone': '+79993334455', 'code': guess}, format='json')
            self.assertEqual(response.data['error'], 'Неверный код')
        response = self.client.post('/api/v1/auth/verify-otp/', {'phone': '+79993334455', 'code': '0004'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Слишком много попыток, запросите новый код')

        response = self.client.post('/api/v1/auth/verify-otp/', {'phone': '+79993334455', 'code': '4321'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Код истёк')
        self.assertFalse(User.objects.filter(phone='+79993334455').exists())

    def test_new_code_resets_attempts(self):
        self._request_code()
        for guess in ('0000', '0001', '0002', '0003'):
            self.client.post('/api/v1/auth/verify-otp/', {'phone': '+79993334455', 'code': guess}, format='json')
        self._request_code()
        response = self.client.post('/api/v1/auth/verify-otp/', {'phone': '+79993334455', 'code': '0005'}, format='json')
        self.assertEqual(response.data['error'], 'Неверный код')
        response = self.client.post('/api/v1/auth/verify-otp/', {'phone': '+79993334455', 'code': '4321'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_generated_code_is_numeric(self):
        code = generate_otp_code()
        self.assertEqual(len(code), 4)
        self.assertTrue(code.isdigit())

    def test_malformed_code(self):
        response = self.client.post('/api/v1/auth/verify-otp/', {'phone': '+79993334455', 'code': 'ab'}, format='json')
        self.assertEqual(response.data['error'], 'Некорректный код')

    def test_sms_failure_returns_502(self):
        with patch('storefront.core.views.send_sms', return_value=False):
            response = self.client.post('/api/v1/auth/request-otp/', {'phone': '+79993334455'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertIsNone(cache.get('otp:+79993334455'))


class RolePermissionTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_anonymous_gets_401(self):
        response = self.client.get('/api/v1/admin/users/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_client_gets_403(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/admin/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_passes_gruzchik_check(self):
        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.get('/api/v1/gruzchik/orders/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)


class UserAdminAPITests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_me(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.data['id'], self.admin.id)

    def test_list_filtered_by_role(self):
        TestDataFactory.create_user(role=User.ROLE_GRUZCHIK)
        TestDataFactory.create_user()
        response = self.client.get('/api/v1/admin/users/', {'role': User.ROLE_GRUZCHIK})
        self.assertEqual(len(response.data['users']), 1)

    def test_create_user_normalizes_phone(self):
        response = self.client.post('/api/v1/admin/users/', {
            'phone': '8 999 777 66 55', 'password': 'secret123', 'name': 'Петр', 'role': User.ROLE_GRUZCHIK,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['phone'], '+79997776655')
        self.assertTrue(AuditLog.objects.filter(action='create', model_name='User').exists())

    def test_duplicate_phone_rejected(self):
        TestDataFactory.create_user(phone='+79997776655')
        response = self.client.post('/api/v1/admin/users/', {
            'phone': '+79997776655', 'password': 'secret123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_delete_self(self):
        response = self.client.delete(f'/api/v1/admin/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_other(self):
        other = TestDataFactory.create_user()
        response = self.client.delete(f'/api/v1/admin/users/{other.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(User.objects.filter(pk=other.pk).exists())

    def test_audit_log_list(self):
        create_audit_log(action='update', model_name='Order', object_id=1, user=self.admin)
        response = self.client.get('/api/v1/admin/audit-logs/', {'model': 'Order'})
        self.assertEqual(response.data['count'], 1)

    def test_audit_log_list_bad_pagination(self):
        create_audit_log(action='update', model_name='Order', object_id=1, user=self.admin)
        for params in ({'page_size': 'abc'}, {'page_size': 0}, {'page_size': -5, 'page': 'x'}):
            response = self.client.get('/api/v1/admin/audit-logs/', params)
            self.assertEqual(response.status_code, status.HTTP_200_OK, params)
            self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/admin/audit-logs/', {'page_size': 100000})
        self.assertEqual(response.data['page_size'], 100)
