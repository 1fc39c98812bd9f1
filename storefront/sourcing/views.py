import logging

from django.core.paginator import Paginator
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from storefront.catalog.models import Category, Product
from storefront.core.exceptions import DraftConversionError
from storefront.core.permissions import IsAdminRole
from storefront.core.utils import create_audit_log

from .conversion import convert_draft_to_product
from .filters import DraftProductFilter
from .models import DraftProduct, WhatsAppMessage
from .serializers import DraftProductSerializer, WhatsAppMessageSerializer
from .webhook import handle_incoming_message

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


def _as_int(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _draft_map(ids):
    return {d.pk: d for d in DraftProduct.objects.filter(pk__in=[_as_int(i) for i in ids if _as_int(i) is not None])}


def _ids_from(request):
    ids = request.data.get('ids')
    if not isinstance(ids, list) or not ids:
        return None
    return ids


@api_view(['GET'])
@permission_classes([IsAdminRole])
def draft_list(request):
    """Drafts that are not deleted, newest first"""
    queryset = DraftProduct.objects.filter(is_deleted=False).select_related('provider', 'category').prefetch_related('images')
    queryset = DraftProductFilter(request.query_params, queryset=queryset).qs

    page_size = min(max(_as_int(request.query_params.get('page_size')) or 50, 1), MAX_PAGE_SIZE)
    page_number = max(_as_int(request.query_params.get('page')) or 1, 1)
    paginator = Paginator(queryset, page_size)
    page = paginator.get_page(page_number)
    serializer = DraftProductSerializer(page.object_list, many=True)
    return Response({
        'results': serializer.data,
        'count': paginator.count,
        'page': page.number,
        'page_size': page_size,
        'total_pages': paginator.num_pages,
    })


@api_view(['POST'])
@permission_classes([IsAdminRole])
def approve_drafts(request):
    """Mark drafts approved and assign them a category"""
    ids = _ids_from(request)
    if ids is None:
        return Response({'error': 'ids are required'}, status=status.HTTP_400_BAD_REQUEST)

    category_id = request.data.get('categoryId')
    if category_id:
        category = Category.objects.filter(pk=category_id).first()
        if category is None:
            return Response({'error': 'Category not found'}, status=status.HTTP_404_NOT_FOUND)
    else:
        category = Category.objects.filter(parent__isnull=True, is_active=True).order_by('sort', 'name').first()
        if category is None:
            return Response({'error': 'No root category found'}, status=status.HTTP_400_BAD_REQUEST)

    results = []
    drafts = _draft_map(ids)
    for draft_id in ids:
        draft = drafts.get(_as_int(draft_id))
        if draft is None:
            results.append({'draftId': draft_id, 'error': 'Draft not found'})
            continue
        draft.status = DraftProduct.STATUS_APPROVED
        draft.category = category
        draft.save(update_fields=['status', 'category', 'updated_at'])
        create_audit_log(request=request, action='draft_approve', model_name='DraftProduct',
                         object_id=draft.pk, object_name=draft.name,
                         changes={'category_id': category.pk})
        results.append({'draftId': draft.pk})

    approved = sum(1 for r in results if 'error' not in r)
    logger.info(f"Draft approval completed: {approved} approved, {len(results) - approved} failed")
    return Response({'results': results})


@api_view(['POST'])
@permission_classes([IsAdminRole])
def convert_drafts_to_catalog(request):
    """Convert drafts into catalog products, one result per draft"""
    ids = _ids_from(request)
    if ids is None:
        return Response({'error': 'ids are required'}, status=status.HTTP_400_BAD_REQUEST)

    drafts = _draft_map(ids)
    results = []
    for draft_id in ids:
        draft = drafts.get(_as_int(draft_id))
        try:
            product = convert_draft_to_product(draft)
        except DraftConversionError as e:
            logger.warning(f"Draft {draft_id} not converted: {e}")
            results.append({'draftId': draft_id, 'error': str(e)})
            continue
        except Exception as e:
            logger.error(f"Unexpected error converting draft {draft_id}: {str(e)}", exc_info=True)
            results.append({'draftId': draft_id, 'error': 'Не удалось конвертировать черновик'})
            continue
        create_audit_log(request=request, action='draft_convert', model_name='DraftProduct',
                         object_id=draft.pk, object_name=product.name,
                         changes={'product_id': product.pk, 'slug': product.slug})
        results.append({'draftId': draft.pk, 'productId': product.pk})

    converted = sum(1 for r in results if 'productId' in r)
    return Response({
        'results': results,
        'converted': converted,
        'failed': len(results) - converted,
    })


@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def green_api_webhook(request):
    """Incoming WhatsApp messages from Green API"""
    if request.method == 'GET':
        return Response({
            'message': 'Green API webhook endpoint is active',
            'timestamp': timezone.now().isoformat(),
        })

    payload = request.data if isinstance(request.data, dict) else {}
    logger.info(f"Webhook: {payload.get('typeWebhook')} from {(payload.get('senderData') or {}).get('chatId', 'unknown')}")
    try:
        handle_incoming_message(payload)
    except Exception as e:
        logger.error(f"Green API webhook error: {str(e)}", exc_info=True)
        return Response({'error': 'Webhook processing failed'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response({'success': True})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def product_source_messages(request, pk):
    """WhatsApp messages a product was built from"""
    product = Product.objects.filter(pk=pk).first()
    if product is None:
        return Response({'error': 'Product not found'}, status=status.HTTP_404_NOT_FOUND)

    ids = [i for i in (product.source_message_ids or []) if _as_int(i) is not None]
    messages = (WhatsAppMessage.objects.filter(pk__in=ids)
                .select_related('provider')
                .order_by('timestamp', 'created_at'))
    return Response({
        'success': True,
        'messages': WhatsAppMessageSerializer(messages, many=True).data,
        'product': {'id': product.pk, 'name': product.name, 'slug': product.slug},
    })


@api_view(['GET'])
@permission_classes([IsAdminRole])
def group_messages(request, group_id):
    """Messages that the AI grouped into one product"""
    limit = min(_as_int(request.query_params.get('limit')) or 50, 100)
    offset = max(_as_int(request.query_params.get('offset')) or 0, 0)

    queryset = WhatsAppMessage.objects.filter(ai_group_id=group_id).select_related('provider').order_by('timestamp', 'created_at')
    total = queryset.count()
    messages = queryset[offset:offset + limit]
    draft = DraftProduct.objects.filter(messages__ai_group_id=group_id).distinct().first()
    return Response({
        'success': True,
        'groupId': group_id,
        'messages': WhatsAppMessageSerializer(messages, many=True).data,
        'draft': DraftProductSerializer(draft).data if draft else None,
        'pagination': {
            'total': total,
            'limit': limit,
            'offset': offset,
            'hasMore': offset + limit < total,
        },
    })
