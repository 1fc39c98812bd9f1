import logging
import re

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.core.exceptions import ObjectDoesNotExist
from django.core.paginator import Paginator
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.views import TokenRefreshView

from storefront.catalog.models import Provider

from .models import AuditLog
from .permissions import IsAdminRole
from .serializers import UserSerializer, UserCreateSerializer, AuditLogSerializer
from .sms import generate_otp_code, send_sms
from .tokens import issue_tokens
from .utils import normalize_phone_to_e164, create_audit_log

logger = logging.getLogger(__name__)

User = get_user_model()

OTP_CODE_RE = re.compile(r'^[0-9]{4,6}$')
OTP_MAX_ATTEMPTS = 5
MAX_PAGE_SIZE = 100


def otp_cache_key(phone):
    return f'otp:{phone}'


def otp_attempts_key(phone):
    return f'otp_attempts:{phone}'


def _otp_ttl():
    return getattr(settings, 'OTP_CACHE_TTL', 300)


def _clear_otp(phone):
    cache.delete_many([otp_cache_key(phone), otp_attempts_key(phone)])


def _register_failed_attempt(phone):
    """Count a wrong guess; returns True once the code has been burned"""
    key = otp_attempts_key(phone)
    cache.add(key, 0, timeout=_otp_ttl())
    try:
        attempts = cache.incr(key)
    except ValueError:
        # counter expired between add and incr
        cache.set(key, 1, timeout=_otp_ttl())
        attempts = 1
    if attempts >= OTP_MAX_ATTEMPTS:
        logger.warning(f"OTP for {phone} invalidated after {attempts} failed attempts")
        _clear_otp(phone)
        return True
    return False


def _positive_int(value, default):
    try:
        return max(int(value), 1)
    except (TypeError, ValueError):
        return default


def is_admin_phone(phone):
    admin_phone = getattr(settings, 'ADMIN_PHONE', '')
    return bool(admin_phone) and normalize_phone_to_e164(admin_phone) == phone


def sync_user_role(user, phone):
    """Promote the admin phone to ADMIN and link provider phones to their Provider"""
    if is_admin_phone(phone):
        if user.role != User.ROLE_ADMIN:
            user.role = User.ROLE_ADMIN
            user.save(update_fields=['role', 'updated_at'])
        return user
    if not user.provider_id and user.role != User.ROLE_ADMIN:
        provider = Provider.objects.filter(phone=phone).first()
        if provider:
            user.role = User.ROLE_PROVIDER
            user.provider = provider
            user.save(update_fields=['role', 'provider', 'updated_at'])
    return user


def auth_response(user):
    return Response({
        'ok': True,
        'user': {
            'id': user.id,
            'phone': user.phone,
            'name': user.name,
            'role': user.role,
        },
        **issue_tokens(user),
    })


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that rejects tokens of deleted users instead of crashing"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except ObjectDoesNotExist:
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def login(request):
    """Phone + password login"""
    phone = request.data.get('phone')
    password = request.data.get('password')
    if not phone or not password:
        return Response({'error': 'Invalid payload'}, status=status.HTTP_400_BAD_REQUEST)

    phone = normalize_phone_to_e164(phone)
    user = User.objects.filter(phone=phone).first()

    if user is None:
        provider = Provider.objects.filter(phone=phone).first()
        if not provider:
            return Response({'error': 'Invalid credentials'}, status=status.HTTP_401_UNAUTHORIZED)
        user = User(username=phone, phone=phone, role=User.ROLE_PROVIDER, provider=provider)
        user.set_unusable_password()
        user.save()
        logger.info(f"Created provider user {user.id} for provider {provider.id}")
    elif not user.is_active or not user.check_password(password):
        return Response({'error': 'Invalid credentials'}, status=status.HTTP_401_UNAUTHORIZED)

    user = sync_user_role(user, phone)
    return auth_response(user)


@api_view(['POST'])
@permission_classes([AllowAny])
def request_otp(request):
    """Generate a one-time code and send it by SMS"""
    phone = normalize_phone_to_e164(request.data.get('phone'))
    if not phone:
        return Response({'error': 'Телефон обязателен'}, status=status.HTTP_400_BAD_REQUEST)

    code = generate_otp_code()
    cache.set(otp_cache_key(phone), code, timeout=_otp_ttl())
    cache.delete(otp_attempts_key(phone))
    if not send_sms(phone, f'Код подтверждения: {code}'):
        _clear_otp(phone)
        return Response({'error': 'Не удалось отправить SMS'}, status=status.HTTP_502_BAD_GATEWAY)

    return Response({'ok': True})


@api_view(['POST'])
@permission_classes([AllowAny])
def verify_otp(request):
    """Check a one-time code, creating the user on first login"""
    code = str(request.data.get('code') or '')
    if not OTP_CODE_RE.match(code):
        return Response({'error': 'Некорректный код'}, status=status.HTTP_400_BAD_REQUEST)

    phone = normalize_phone_to_e164(request.data.get('phone'))
    if not phone:
        return Response({'error': 'Код не запрошен'}, status=status.HTTP_400_BAD_REQUEST)

    expected = cache.get(otp_cache_key(phone))
    if expected is None:
        return Response({'error': 'Код истёк'}, status=status.HTTP_400_BAD_REQUEST)
    if expected != code:
        if _register_failed_attempt(phone):
            return Response({'error': 'Слишком много попыток, запросите новый код'}, status=status.HTTP_400_BAD_REQUEST)
        return Response({'error': 'Неверный код'}, status=status.HTTP_400_BAD_REQUEST)

    user = User.objects.filter(phone=phone).first()
    if user is None:
        role = User.ROLE_CLIENT
        provider = None
        if is_admin_phone(phone):
            role = User.ROLE_ADMIN
        else:
            provider = Provider.objects.filter(phone=phone).first()
            if provider:
                role = User.ROLE_PROVIDER
        user = User(username=phone, phone=phone, role=role, provider=provider)
        user.set_unusable_password()
        user.save()
        logger.info(f"Created {role} user {user.id} via OTP")

    user = sync_user_role(user, phone)
    _clear_otp(phone)
    return auth_response(user)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user"""
    return Response(UserSerializer(request.user).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def user_list_create(request):
    """List users (optionally by role) or create a new user"""
    if request.method == 'GET':
        users = User.objects.all().order_by('-created_at')
        role = request.query_params.get('role')
        if role:
            users = users.filter(role=role)
        serializer = UserSerializer(users, many=True)
        return Response({'users': serializer.data})
    else:
        serializer = UserCreateSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            create_audit_log(request=request, action='create', model_name='User',
                             object_id=user.id, object_name=user.phone,
                             changes={'role': user.role})
            return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def user_detail(request, pk):
    """Retrieve, update or delete a user"""
    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        serializer = UserSerializer(user)
        return Response(serializer.data)
    elif request.method == 'PATCH':
        serializer = UserSerializer(user, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            password = request.data.get('password')
            if password:
                user.set_password(password)
                user.save(update_fields=['password'])
            create_audit_log(request=request, action='update', model_name='User',
                             object_id=user.id, object_name=user.phone,
                             changes={k: v for k, v in request.data.items() if k != 'password'})
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if user.pk == request.user.pk:
            return Response({'error': 'Нельзя удалить самого себя'}, status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request=request, action='delete', model_name='User',
                         object_id=user.id, object_name=user.phone)
        user.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def audit_log_list(request):
    """Audit trail, newest first, filterable by action and model"""
    queryset = AuditLog.objects.select_related('user')

    action_filter = request.query_params.get('action')
    if action_filter:
        queryset = queryset.filter(action=action_filter)
    model_filter = request.query_params.get('model')
    if model_filter:
        queryset = queryset.filter(model_name=model_filter)

    queryset = queryset.order_by('-created_at')
    page_size = min(_positive_int(request.query_params.get('page_size'), 50), MAX_PAGE_SIZE)
    page_number = _positive_int(request.query_params.get('page'), 1)
    paginator = Paginator(queryset, page_size)
    page = paginator.get_page(page_number)
    serializer = AuditLogSerializer(page.object_list, many=True)
    return Response({
        'results': serializer.data,
        'count': paginator.count,
        'page': page.number,
        'page_size': page_size,
        'total_pages': paginator.num_pages,
    })
