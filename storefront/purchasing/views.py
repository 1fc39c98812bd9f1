import logging
from decimal import Decimal, InvalidOperation

from django.db.models import Count
from django.http import HttpResponse
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from storefront.catalog.models import Product
from storefront.core.permissions import IsAdminRole
from storefront.core.utils import create_audit_log
from storefront.orders.serializers import OrderSerializer

from .exports import (
    build_csv, build_xlsx, content_disposition, export_filename,
    format_purchase_description, old_price_for,
)
from .models import Purchase, PurchaseItem
from .serializers import PurchaseSerializer, PurchaseDetailSerializer, PurchaseItemSerializer
from .services import create_order_from_purchase

logger = logging.getLogger(__name__)

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def _own_purchase(request, pk):
    return Purchase.objects.filter(pk=pk, created_by=request.user).first()


def _purchase_not_found():
    return Response({'error': 'Закупка не найдена'}, status=status.HTTP_404_NOT_FOUND)


@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def purchase_list_create(request):
    """
    GET: purchases created by the caller
    POST: new empty purchase
    """
    if request.method == 'GET':
        purchases = Purchase.objects.filter(created_by=request.user).annotate(items_count=Count('items'))
        return Response({'purchases': PurchaseSerializer(purchases, many=True).data})

    serializer = PurchaseSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'error': 'Требуется название закупки', 'details': serializer.errors},
                        status=status.HTTP_400_BAD_REQUEST)
    purchase = serializer.save(created_by=request.user)
    logger.info(f"Purchase {purchase.pk} created by user {request.user.pk}")
    return Response(PurchaseSerializer(purchase).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def purchase_detail(request, pk):
    purchase = _own_purchase(request, pk)
    if purchase is None:
        return _purchase_not_found()

    if request.method == 'GET':
        return Response(PurchaseDetailSerializer(purchase).data)

    if request.method == 'PATCH':
        serializer = PurchaseSerializer(purchase, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response({'error': 'Требуется название закупки', 'details': serializer.errors},
                            status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        return Response(PurchaseDetailSerializer(purchase).data)

    purchase.delete()
    return Response({'success': True})


@api_view(['POST'])
@permission_classes([IsAdminRole])
def purchase_add_item(request, pk):
    """Add one product color to a purchase"""
    try:
        product_id = int(request.data.get('productId'))
    except (TypeError, ValueError):
        product_id = None
    if not product_id:
        return Response({'error': 'Требуется ID товара'}, status=status.HTTP_400_BAD_REQUEST)

    purchase = _own_purchase(request, pk)
    if purchase is None:
        return _purchase_not_found()

    color = request.data.get('color') or None
    if purchase.items.filter(product_id=product_id, color=color).exists():
        return Response({'error': 'Этот цвет товара уже в закупке'}, status=status.HTTP_400_BAD_REQUEST)

    product = Product.objects.filter(pk=product_id).first()
    if product is None:
        return Response({'error': 'Товар не найден'}, status=status.HTTP_404_NOT_FOUND)

    last = purchase.items.order_by('-sort_index').first()
    item = PurchaseItem.objects.create(
        purchase=purchase,
        product=product,
        color=color,
        name=product.name,
        description=format_purchase_description(
            description=product.description,
            material=product.material,
            sizes=product.sizes,
            price_pair=product.price_pair,
        ),
        price=product.price_pair,
        old_price=old_price_for(product.price_pair),
        sort_index=(last.sort_index if last else 0) + 1,
    )
    return Response(PurchaseItemSerializer(item).data, status=status.HTTP_201_CREATED)


@api_view(['PUT', 'DELETE'])
@permission_classes([IsAdminRole])
def purchase_item_detail(request, pk, item_id):
    purchase = _own_purchase(request, pk)
    if purchase is None:
        return _purchase_not_found()

    item = purchase.items.filter(pk=item_id).select_related('product').first()
    if item is None:
        return Response({'error': 'Товар закупки не найден'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'DELETE':
        item.delete()
        return Response({'success': True})

    data = request.data
    if 'name' in data:
        item.name = data['name']
    if 'description' in data:
        item.description = data['description']
    if 'price' in data:
        try:
            price = Decimal(str(data['price']))
        except InvalidOperation:
            return Response({'error': 'Некорректная цена'}, status=status.HTTP_400_BAD_REQUEST)
        item.price = price
        item.old_price = old_price_for(price)
    if 'sortIndex' in data:
        try:
            item.sort_index = int(data['sortIndex'])
        except (TypeError, ValueError):
            return Response({'error': 'Некорректный порядок'}, status=status.HTTP_400_BAD_REQUEST)
    item.save()
    return Response(PurchaseItemSerializer(item).data)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def purchase_export(request, pk):
    """Download the purchase as XLSX (default) or CSV"""
    purchase = _own_purchase(request, pk)
    if purchase is None:
        return _purchase_not_found()

    export_format = request.query_params.get('format', 'xlsx').lower()
    if export_format not in ('xlsx', 'csv'):
        return Response({'error': 'Unsupported export format'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        if export_format == 'csv':
            response = HttpResponse(build_csv(purchase), content_type='text/csv; charset=utf-8')
        else:
            response = HttpResponse(build_xlsx(purchase), content_type=XLSX_CONTENT_TYPE)
    except Exception as e:
        logger.error(f"Error exporting purchase {purchase.pk}: {str(e)}", exc_info=True)
        return Response({'error': 'Failed to export purchase'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    response['Content-Disposition'] = content_disposition(export_filename(purchase, export_format))
    response['Cache-Control'] = 'no-store'
    create_audit_log(request=request, action='purchase_export', model_name='Purchase',
                     object_id=purchase.pk, object_name=purchase.name,
                     changes={'format': export_format, 'items': purchase.items.count()})
    return response


@api_view(['POST'])
@permission_classes([IsAdminRole])
def purchase_create_order(request, pk):
    """Turn the purchase into an order placed by the caller"""
    purchase = _own_purchase(request, pk)
    if purchase is None:
        return _purchase_not_found()
    if not purchase.items.exists():
        return Response({'error': 'Purchase has no items'}, status=status.HTTP_400_BAD_REQUEST)

    order = create_order_from_purchase(purchase, request.user)
    create_audit_log(request=request, action='order_create', model_name='Order',
                     object_id=order.pk, object_name=order.order_number,
                     changes={'purchase_id': purchase.pk, 'total': str(order.total)})
    return Response({'success': True, 'order': OrderSerializer(order).data}, status=status.HTTP_201_CREATED)
