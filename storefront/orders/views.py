import logging
import math
from decimal import Decimal, InvalidOperation

from django.db import IntegrityError, transaction
from django.db.models import Count, Prefetch
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from storefront.catalog.models import ProductImage
from storefront.core.exceptions import OrderCreationError
from storefront.core.models import User
from storefront.core.permissions import IsAdminRole, IsGruzchik
from storefront.core.utils import create_audit_log

from .models import Order, OrderItem, OrderItemMessage, OrderItemFeedback, OrderItemReplacement
from .serializers import (
    OrderSerializer, OrderCreateSerializer, OrderItemMessageSerializer,
    OrderItemFeedbackSerializer, OrderItemReplacementSerializer, OrderItemsAddSerializer, UserBriefSerializer,
)
from .services import add_order_items, create_order, recalculate_order_total
from .statuses import STATUS_VALUES

logger = logging.getLogger(__name__)

ADMIN_ORDER_LIMIT = 200


def _order_queryset():
    images = Prefetch('items__product__images', queryset=ProductImage.objects.filter(is_active=True))
    return (Order.objects
            .select_related('user', 'gruzchik', 'transport')
            .prefetch_related('items__product', images))


def _positive_int(value, default):
    try:
        return max(int(value), 1)
    except (TypeError, ValueError):
        return default


def _unread_counts(orders, user):
    """Non-service messages per order written by others and not yet read by `user`"""
    rows = (OrderItemMessage.objects
            .filter(item__order__in=orders, is_service=False)
            .exclude(user=user)
            .exclude(read_by=user)
            .values('item__order_id')
            .annotate(unread=Count('id')))
    return {row['item__order_id']: row['unread'] for row in rows}


def _message_list(item, user=None, mark_read=False):
    messages = list(item.messages.select_related('user'))
    if mark_read and user is not None:
        for message in messages:
            if message.user_id != user.pk:
                message.read_by.add(user)
    return Response({
        'success': True,
        'messages': OrderItemMessageSerializer(messages, many=True).data,
    })


def _post_message(request, item):
    text = request.data.get('text')
    attachments = request.data.get('attachments')
    if not text and not attachments:
        return Response({'error': 'Message text or attachments required'}, status=status.HTTP_400_BAD_REQUEST)

    message = OrderItemMessage.objects.create(
        item=item,
        user=request.user,
        text=text or None,
        is_service=bool(request.data.get('isService', False)),
        attachments=attachments or None,
    )
    message.read_by.add(request.user)
    return Response({
        'success': True,
        'message': OrderItemMessageSerializer(message).data,
    }, status=status.HTTP_201_CREATED)


def _client_item(request, item_id):
    return OrderItem.objects.filter(pk=item_id, order__user=request.user).select_related('order').first()


def _item_not_found():
    return Response({'error': 'Order item not found'}, status=status.HTTP_404_NOT_FOUND)


# Client endpoints

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def order_list_create(request):
    """
    GET: the caller's orders, newest first
    POST: place an order from cart items
    """
    if request.method == 'GET':
        orders = _order_queryset().filter(user=request.user)
        return Response({'orders': OrderSerializer(orders, many=True).data})

    serializer = OrderCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'error': 'Invalid order data', 'details': serializer.errors},
                        status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        order = create_order(request.user, data['items'], data['customer'], data['transportCompanyId'])
    except OrderCreationError as e:
        logger.warning(f"Order rejected for user {request.user.pk}: {e}")
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        logger.error(f"Error creating order: {str(e)}", exc_info=True)
        return Response({'error': 'Internal server error'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    create_audit_log(request=request, action='order_create', model_name='Order',
                     object_id=order.pk, object_name=order.order_number,
                     changes={'total': str(order.total), 'items': order.items.count()})
    order = _order_queryset().get(pk=order.pk)
    return Response({'success': True, 'order': OrderSerializer(order).data}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def order_item_messages(request, item_id):
    item = _client_item(request, item_id)
    if item is None:
        return _item_not_found()
    if request.method == 'GET':
        return _message_list(item, request.user, mark_read=True)
    return _post_message(request, item)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def order_item_feedback(request, item_id):
    """Client feedback on a delivered item. A refusal drops the item from the order total."""
    item = _client_item(request, item_id)
    if item is None:
        return _item_not_found()

    if request.method == 'GET':
        feedbacks = item.feedbacks.select_related('user')
        return Response({
            'success': True,
            'feedbacks': OrderItemFeedbackSerializer(feedbacks, many=True).data,
        })

    feedback_type = request.data.get('feedbackType')
    if feedback_type not in dict(OrderItemFeedback.TYPE_CHOICES):
        return Response({'error': 'Invalid feedback type'}, status=status.HTTP_400_BAD_REQUEST)

    if item.feedbacks.filter(user=request.user, feedback_type=feedback_type).exists():
        return Response({'error': 'Feedback already exists for this type'}, status=status.HTTP_409_CONFLICT)

    try:
        with transaction.atomic():
            feedback = OrderItemFeedback.objects.create(
                item=item,
                user=request.user,
                feedback_type=feedback_type,
                refusal_reason=request.data.get('refusalReason') or None,
            )
            if feedback_type in OrderItemFeedback.REFUSAL_TYPES:
                recalculate_order_total(item.order)
    except IntegrityError:
        return Response({'error': 'Feedback already exists for this type'}, status=status.HTTP_409_CONFLICT)

    return Response({
        'success': True,
        'feedback': OrderItemFeedbackSerializer(feedback).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def replacement_response(request, item_id):
    """Client accepts or rejects the pending replacement for an item"""
    new_status = request.data.get('status')
    if new_status not in (OrderItemReplacement.STATUS_ACCEPTED, OrderItemReplacement.STATUS_REJECTED):
        return Response({'error': 'Invalid status'}, status=status.HTTP_400_BAD_REQUEST)

    item = _client_item(request, item_id)
    if item is None:
        return _item_not_found()

    replacement = item.replacements.filter(
        client=request.user, status=OrderItemReplacement.STATUS_PENDING,
    ).first()
    if replacement is None:
        return Response({'error': 'No pending replacement found'}, status=status.HTTP_404_NOT_FOUND)

    replacement.status = new_status
    replacement.client_comment = request.data.get('clientComment') or None
    replacement.save(update_fields=['status', 'client_comment', 'updated_at'])
    logger.info(f"Replacement {replacement.pk} for item {item.item_code} {new_status.lower()} by client")
    return Response({
        'success': True,
        'replacement': OrderItemReplacementSerializer(replacement).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_unread_counts(request, pk):
    """Per item: messages from others and how many of them the caller has not read"""
    order = Order.objects.filter(pk=pk, user=request.user).first()
    if order is None:
        return Response({'error': 'Order not found'}, status=status.HTTP_404_NOT_FOUND)

    counts = {}
    for item in order.items.all():
        from_others = item.messages.exclude(user=request.user)
        total = from_others.count()
        unread = from_others.exclude(read_by=request.user).count()
        counts[str(item.pk)] = {'unreadCount': unread, 'totalMessages': total}
    return Response({'unreadCounts': counts})


# Admin endpoints

@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def admin_order_list_update(request):
    """
    GET: recent orders with unread message counts, plus assignable gruzchiks
    POST: update status, gruzchik, payment and the client's label
    """
    if request.method == 'GET':
        orders = list(_order_queryset()[:ADMIN_ORDER_LIMIT])
        unread = _unread_counts(orders, request.user)
        data = OrderSerializer(orders, many=True).data
        for row in data:
            row['unreadMessageCount'] = unread.get(row['id'], 0)
        gruzchiks = User.objects.filter(role=User.ROLE_GRUZCHIK).order_by('name')
        return Response({
            'orders': data,
            'gruzchiks': UserBriefSerializer(gruzchiks, many=True).data,
        })

    order_id = request.data.get('id')
    if not order_id:
        return Response({'error': 'id is required'}, status=status.HTTP_400_BAD_REQUEST)

    order = Order.objects.select_related('user').filter(pk=order_id).first()
    if order is None:
        return Response({'error': 'Order not found'}, status=status.HTTP_404_NOT_FOUND)

    changes = {}
    new_status = request.data.get('status')
    if new_status is not None:
        if new_status not in STATUS_VALUES:
            return Response({'error': 'Invalid status'}, status=status.HTTP_400_BAD_REQUEST)
        changes['status'] = {'old': order.status, 'new': new_status}
        order.status = new_status

    if 'gruzchikId' in request.data:
        gruzchik_id = request.data.get('gruzchikId') or None
        if gruzchik_id is not None:
            try:
                gruzchik_id = int(gruzchik_id)
            except (TypeError, ValueError):
                return Response({'error': 'Gruzchik not found'}, status=status.HTTP_400_BAD_REQUEST)
            if not User.objects.filter(pk=gruzchik_id, role=User.ROLE_GRUZCHIK).exists():
                return Response({'error': 'Gruzchik not found'}, status=status.HTTP_400_BAD_REQUEST)
        changes['gruzchik_id'] = {'old': order.gruzchik_id, 'new': gruzchik_id}
        order.gruzchik_id = gruzchik_id

    if request.data.get('payment') is not None:
        try:
            payment = Decimal(str(request.data['payment']))
        except InvalidOperation:
            return Response({'error': 'Invalid payment'}, status=status.HTTP_400_BAD_REQUEST)
        changes['payment'] = {'old': str(order.payment), 'new': str(payment)}
        order.payment = payment

    order.save()

    if 'label' in request.data and order.user is not None:
        order.user.label = request.data.get('label') or None
        order.user.save(update_fields=['label', 'updated_at'])
        changes['label'] = order.user.label

    create_audit_log(request=request, action='order_update', model_name='Order',
                     object_id=order.pk, object_name=order.order_number, changes=changes)
    order = _order_queryset().get(pk=order.pk)
    return Response({'ok': True, 'order': OrderSerializer(order).data})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_order_detail(request, pk):
    order = _order_queryset().filter(pk=pk).first()
    if order is None:
        return Response({'error': 'Order not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response({'order': OrderSerializer(order).data})


@api_view(['POST'])
@permission_classes([IsAdminRole])
def admin_order_items_add(request, pk):
    """Append products to an existing order"""
    order = Order.objects.filter(pk=pk).first()
    if order is None:
        return Response({'error': 'Order not found'}, status=status.HTTP_404_NOT_FOUND)

    serializer = OrderItemsAddSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'error': 'Invalid items', 'details': serializer.errors},
                        status=status.HTTP_400_BAD_REQUEST)

    try:
        added = add_order_items(order, serializer.validated_data['items'])
    except OrderCreationError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request=request, action='order_items_add', model_name='Order',
                     object_id=order.pk, object_name=order.order_number,
                     changes={'items': [item.item_code for item in added], 'total': str(order.total)})
    order = _order_queryset().get(pk=order.pk)
    return Response({'success': True, 'order': OrderSerializer(order).data}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def admin_order_item_messages(request, item_id):
    item = OrderItem.objects.filter(pk=item_id).first()
    if item is None:
        return _item_not_found()
    if request.method == 'GET':
        return _message_list(item, request.user, mark_read=True)
    return _post_message(request, item)


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def admin_order_item_message_detail(request, item_id, message_id):
    """Edit the text of a chat message or remove it"""
    if not OrderItem.objects.filter(pk=item_id).exists():
        return _item_not_found()
    message = OrderItemMessage.objects.select_related('user').filter(pk=message_id, item_id=item_id).first()
    if message is None:
        return Response({'error': 'Message not found'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'DELETE':
        create_audit_log(request=request, action='message_delete', model_name='OrderItemMessage',
                         object_id=message.pk, object_name=str(item_id),
                         changes={'text': message.text})
        message.delete()
        return Response({'success': True})

    text = str(request.data.get('text') or '').strip()
    if not text:
        return Response({'error': 'Message text is required'}, status=status.HTTP_400_BAD_REQUEST)
    changes = {'text': {'old': message.text, 'new': text}}
    message.text = text
    message.save(update_fields=['text'])
    create_audit_log(request=request, action='message_update', model_name='OrderItemMessage',
                     object_id=message.pk, object_name=str(item_id), changes=changes)
    return Response({'success': True, 'message': OrderItemMessageSerializer(message).data})


@api_view(['POST'])
@permission_classes([IsAdminRole])
def admin_propose_replacement(request, item_id):
    """Offer the client a replacement for an item; the offer is also posted to the item chat"""
    image_url = request.data.get('replacementImageUrl')
    image_key = request.data.get('replacementImageKey')
    admin_comment = request.data.get('adminComment') or None
    if not image_url and not image_key:
        return Response({'error': 'Replacement image is required'}, status=status.HTTP_400_BAD_REQUEST)

    item = OrderItem.objects.select_related('order').filter(pk=item_id).first()
    if item is None:
        return _item_not_found()
    if item.order.user_id is None:
        return Response({'error': 'Order has no client'}, status=status.HTTP_400_BAD_REQUEST)

    existing = item.replacements.filter(status=OrderItemReplacement.STATUS_PENDING).first()
    if existing is not None:
        return Response({
            'error': 'Replacement proposal already exists',
            'existingReplacement': OrderItemReplacementSerializer(existing).data,
        }, status=status.HTTP_409_CONFLICT)

    replacement = OrderItemReplacement.objects.create(
        item=item,
        admin=request.user,
        client_id=item.order.user_id,
        image_url=image_url or None,
        image_key=image_key or None,
        admin_comment=admin_comment,
    )

    attachments = None
    if image_url:
        attachments = [{'type': 'image/jpeg', 'name': image_key or 'replacement_image.jpg', 'url': image_url}]
    try:
        OrderItemMessage.objects.create(item=item, user=request.user, text=admin_comment,
                                        is_service=False, attachments=attachments)
    except Exception as e:
        logger.error(f"Failed to post replacement message for item {item.pk}: {str(e)}", exc_info=True)

    create_audit_log(request=request, action='replacement_create', model_name='OrderItem',
                     object_id=item.pk, object_name=item.item_code,
                     changes={'replacement_id': replacement.pk})
    return Response({
        'success': True,
        'replacement': OrderItemReplacementSerializer(replacement).data,
    }, status=status.HTTP_201_CREATED)


# Gruzchik endpoints

@api_view(['GET'])
@permission_classes([IsGruzchik])
def gruzchik_order_list(request):
    """Orders assigned to the calling gruzchik"""
    page = _positive_int(request.query_params.get('page'), 1)
    limit = _positive_int(request.query_params.get('limit'), 10)

    queryset = _order_queryset().filter(gruzchik=request.user)
    order_status = request.query_params.get('status')
    if order_status:
        queryset = queryset.filter(status=order_status)

    total = queryset.count()
    offset = (page - 1) * limit
    orders = queryset[offset:offset + limit]
    return Response({
        'orders': OrderSerializer(orders, many=True).data,
        'pagination': {
            'page': page,
            'limit': limit,
            'total': total,
            'totalPages': math.ceil(total / limit),
        },
    })


@api_view(['GET', 'POST'])
@permission_classes([IsGruzchik])
def gruzchik_order_item_messages(request, item_id):
    queryset = OrderItem.objects.filter(pk=item_id)
    if request.user.role == User.ROLE_GRUZCHIK:
        queryset = queryset.filter(order__gruzchik=request.user)
    item = queryset.first()
    if item is None:
        return _item_not_found()
    if request.method == 'GET':
        return _message_list(item, request.user, mark_read=True)
    return _post_message(request, item)
