import logging
from decimal import Decimal, InvalidOperation

from django.core.paginator import Paginator
from django.db import IntegrityError, transaction
from django.db.models import Avg, Max, Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from storefront.core.exceptions import SlugAllocationError
from storefront.core.permissions import IsAdminRole
from storefront.core.utils import create_audit_log

from .cache import get_public_category_tree
from .filters import CatalogProductFilter
from .history import record_search, recent_searches
from .models import Category, Product, Review, SearchHistory
from .serializers import AdminProductSerializer, CatalogProductSerializer, ProductDetailSerializer, ReviewSerializer
from .slugs import (
    sanitize_segment, sanitize_slug, ensure_unique_slug, capitalize_first_letter,
    catalog_root, url_path,
)
from .tree import CATEGORY_FIELDS, category_node, is_descendant, load_tree

logger = logging.getLogger(__name__)

SEO_FIELDS = {
    'seoTitle': 'seo_title',
    'seoDescription': 'seo_description',
    'seoH1': 'seo_h1',
    'seoCanonical': 'seo_canonical',
    'seoIntroHtml': 'seo_intro_html',
}


def _parse_int(value, default):
    try:
        return max(int(value), 1)
    except (TypeError, ValueError):
        return default


def _category_error(message, code):
    return Response({'ok': False, 'error': message}, status=code)


def _conflict_from_integrity_error(error):
    field = 'slug' if 'slug' in str(error).lower() else 'URL сегмент'
    return _category_error(f'Категория с таким {field} уже существует', status.HTTP_409_CONFLICT)


def _category_item(category, direct_count=0):
    row = {field: getattr(category, field) for field in CATEGORY_FIELDS}
    return category_node(row, direct_count)


def _apply_category_payload(category, data, partial=False):
    """Copy flags and SEO fields; with partial=True only keys present in data are written"""
    if not partial or 'isActive' in data:
        category.is_active = bool(data.get('isActive', True))
    if not partial or 'seoNoindex' in data:
        category.seo_noindex = bool(data.get('seoNoindex', False))
    for key, field in SEO_FIELDS.items():
        if not partial or key in data:
            setattr(category, field, data.get(key))
    if 'icon' in data:
        category.icon = data.get('icon')


def _index_nodes(nodes, index=None):
    index = {} if index is None else index
    for node in nodes:
        index[node['id']] = node
        _index_nodes(node['children'], index)
    return index


# Admin category views
@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def admin_category_list_create(request):
    """Full category tree with product counts, or create a category"""
    if request.method == 'GET':
        try:
            return Response({'ok': True, 'items': load_tree()})
        except Exception as e:
            logger.error(f"Failed to load categories: {str(e)}", exc_info=True)
            return _category_error('Не удалось загрузить категории', status.HTTP_500_INTERNAL_SERVER_ERROR)

    data = request.data
    name = (data.get('name') or '').strip()
    if not name:
        return _category_error('Название категории обязательно', status.HTTP_400_BAD_REQUEST)

    segment = sanitize_segment(data.get('urlSegment') or name)
    if not segment:
        return _category_error('URL сегмент обязателен', status.HTTP_400_BAD_REQUEST)

    parent = None
    parent_id = data.get('parentId')
    if parent_id:
        parent = Category.objects.filter(pk=parent_id).first()
        if parent is None:
            return _category_error('Родительская категория не найдена', status.HTTP_404_NOT_FOUND)

    try:
        with transaction.atomic():
            slug_base = sanitize_slug(parent.slug if parent else None, data.get('slug'), name)
            slug = ensure_unique_slug(slug_base)
            max_sort = Category.objects.filter(parent=parent).aggregate(m=Max('sort'))['m']
            category = Category(
                name=capitalize_first_letter(name),
                parent=parent,
                slug=slug,
                path=f'{parent.path}/{segment}' if parent else segment,
                sort=max_sort + 1 if max_sort is not None else 500,
            )
            _apply_category_payload(category, data)
            category.save()
    except IntegrityError as e:
        logger.warning(f"Category create conflict: {str(e)}")
        return _conflict_from_integrity_error(e)
    except SlugAllocationError as e:
        return _category_error(str(e), status.HTTP_409_CONFLICT)
    except Exception as e:
        logger.error(f"Failed to create category: {str(e)}", exc_info=True)
        return _category_error('Не удалось создать категорию', status.HTTP_500_INTERNAL_SERVER_ERROR)

    create_audit_log(request=request, action='create', model_name='Category',
                     object_id=category.id, object_name=category.name,
                     changes={'path': category.path, 'slug': category.slug})
    return Response({'ok': True, 'item': _category_item(category)}, status=status.HTTP_201_CREATED)


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def admin_category_detail(request, pk):
    """Update or delete a category"""
    category = Category.objects.filter(pk=pk).first()
    if category is None:
        return _category_error('Категория не найдена', status.HTTP_404_NOT_FOUND)

    if request.method == 'DELETE':
        if category.children.exists():
            return _category_error('Нельзя удалить категорию с подкатегориями', status.HTTP_409_CONFLICT)
        if category.products.exists():
            return _category_error('Нельзя удалить категорию с товарами', status.HTTP_409_CONFLICT)
        create_audit_log(request=request, action='delete', model_name='Category',
                         object_id=category.id, object_name=category.name,
                         changes={'path': category.path})
        category.delete()
        return Response({'ok': True})

    data = request.data
    name = (data.get('name') or '').strip()
    if not name:
        return _category_error('Название категории обязательно', status.HTTP_400_BAD_REQUEST)

    parent = None
    parent_id = data.get('parentId')
    if parent_id:
        if str(parent_id) == str(category.pk):
            return _category_error('Категория не может быть родителем самой себя', status.HTTP_400_BAD_REQUEST)
        parent = Category.objects.filter(pk=parent_id).first()
        if parent is None:
            return _category_error('Родительская категория не найдена', status.HTTP_404_NOT_FOUND)
        if is_descendant(category.pk, parent.pk):
            return _category_error('Нельзя переместить категорию в её потомка', status.HTTP_400_BAD_REQUEST)

    segment = sanitize_segment(data.get('urlSegment') or name)
    if not segment:
        return _category_error('URL сегмент обязателен', status.HTTP_400_BAD_REQUEST)

    old_path = category.path
    try:
        with transaction.atomic():
            slug_base = sanitize_slug(parent.slug if parent else None, data.get('slug'), name)
            category.slug = ensure_unique_slug(slug_base, exclude_id=category.pk)
            category.name = capitalize_first_letter(name)
            category.parent = parent
            category.path = f'{parent.path}/{segment}' if parent else segment
            _apply_category_payload(category, data, partial=True)
            category.save()
            if category.path != old_path:
                _rewrite_descendant_paths(old_path, category.path)
    except IntegrityError as e:
        logger.warning(f"Category update conflict for {pk}: {str(e)}")
        return _conflict_from_integrity_error(e)
    except SlugAllocationError as e:
        return _category_error(str(e), status.HTTP_409_CONFLICT)
    except Exception as e:
        logger.error(f"Failed to update category {pk}: {str(e)}", exc_info=True)
        return _category_error('Не удалось обновить категорию', status.HTTP_500_INTERNAL_SERVER_ERROR)

    create_audit_log(request=request, action='update', model_name='Category',
                     object_id=category.id, object_name=category.name,
                     changes={'path': {'old': old_path, 'new': category.path}, 'slug': category.slug})
    direct_count = category.products.count()
    return Response({'ok': True, 'item': _category_item(category, direct_count)})


def _rewrite_descendant_paths(old_path, new_path):
    prefix = f'{old_path}/'
    for descendant in Category.objects.filter(path__startswith=prefix):
        descendant.path = new_path + '/' + descendant.path[len(prefix):]
        descendant.save(update_fields=['path', 'updated_at'])


# Admin product views
PRODUCT_TEXT_FIELDS = {
    'name': 'name',
    'article': 'article',
    'material': 'material',
    'gender': 'gender',
    'season': 'season',
    'description': 'description',
}


def _admin_product_queryset():
    return Product.objects.select_related('category', 'provider').prefetch_related('images')


def _product_not_found():
    return Response({'error': 'Product not found'}, status=status.HTTP_404_NOT_FOUND)


def _apply_product_changes(product, data):
    """Write the keys present in `data`; returns (changes, error_response)"""
    changes = {}
    for key, field in PRODUCT_TEXT_FIELDS.items():
        if key in data:
            value = data.get(key)
            if key == 'name' and not (value or '').strip():
                return None, Response({'error': 'Product name is required'}, status=status.HTTP_400_BAD_REQUEST)
            changes[key] = {'old': getattr(product, field), 'new': value}
            setattr(product, field, value)

    if 'pricePair' in data:
        try:
            price = Decimal(str(data.get('pricePair')))
        except (InvalidOperation, ValueError):
            return None, Response({'error': 'Invalid pricePair'}, status=status.HTTP_400_BAD_REQUEST)
        if not price.is_finite() or price < 0:
            return None, Response({'error': 'Invalid pricePair'}, status=status.HTTP_400_BAD_REQUEST)
        changes['pricePair'] = {'old': str(product.price_pair), 'new': str(price)}
        product.price_pair = price

    if 'sizes' in data:
        sizes = data.get('sizes')
        if not isinstance(sizes, list):
            return None, Response({'error': 'sizes must be a list'}, status=status.HTTP_400_BAD_REQUEST)
        product.sizes = sizes
        changes['sizes'] = sizes

    if 'categoryId' in data:
        category = Category.objects.filter(pk=_parse_int(data.get('categoryId'), 0)).first()
        if category is None:
            return None, Response({'error': 'Category not found'}, status=status.HTTP_400_BAD_REQUEST)
        changes['categoryId'] = {'old': product.category_id, 'new': category.pk}
        product.category = category

    if 'isActive' in data:
        is_active = bool(data.get('isActive'))
        if is_active != product.is_active:
            changes['isActive'] = {'old': product.is_active, 'new': is_active}
        product.is_active = is_active

    return changes, None


@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_product_list(request):
    """All products, inactive included, with search and category filters"""
    queryset = _admin_product_queryset().order_by('-created_at')
    search = (request.query_params.get('search') or '').strip()
    if search:
        queryset = queryset.filter(
            Q(name__icontains=search) | Q(article__icontains=search) | Q(slug__icontains=search)
        )
    category_id = request.query_params.get('categoryId')
    if category_id:
        queryset = queryset.filter(category_id=_parse_int(category_id, 0))

    page_number = _parse_int(request.query_params.get('page'), 1)
    page_size = min(_parse_int(request.query_params.get('pageSize'), 20), 100)
    paginator = Paginator(queryset, page_size)
    page = paginator.get_page(page_number)
    return Response({
        'products': AdminProductSerializer(page.object_list, many=True).data,
        'pagination': {
            'total': paginator.count,
            'page': page.number,
            'pageSize': page_size,
            'totalPages': paginator.num_pages,
        },
    })


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def admin_product_detail(request, pk):
    """Get, edit or delete a product"""
    product = _admin_product_queryset().filter(pk=pk).first()
    if product is None:
        return _product_not_found()

    if request.method == 'GET':
        return Response({'product': AdminProductSerializer(product).data})

    if request.method == 'DELETE':
        if product.order_items.exists():
            return Response({
                'error': 'Нельзя удалить товар: он уже используется в заказах. Пометьте товар как неактивный.',
            }, status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request=request, action='delete', model_name='Product',
                         object_id=product.id, object_name=product.name,
                         changes={'slug': product.slug, 'article': product.article})
        product.delete()
        return Response({'success': True})

    if not request.data:
        return Response({'error': 'No fields to update'}, status=status.HTTP_400_BAD_REQUEST)

    changes, error = _apply_product_changes(product, request.data)
    if error is not None:
        return error
    product.active_updated_at = timezone.now()
    product.save()
    logger.info(f"Product {product.pk} updated: {', '.join(changes) or 'no changes'}")
    create_audit_log(request=request, action='update', model_name='Product',
                     object_id=product.id, object_name=product.name, changes=changes)
    product = _admin_product_queryset().get(pk=product.pk)
    return Response({'product': AdminProductSerializer(product).data})


@api_view(['DELETE'])
@permission_classes([IsAdminRole])
def admin_product_color_delete(request, pk, color):
    """Delete every image of one color of a product, matched case-insensitively"""
    product = Product.objects.filter(pk=pk).first()
    if product is None:
        return _product_not_found()
    color = (color or '').strip()
    if not color:
        return Response({'error': 'Color is required'}, status=status.HTTP_400_BAD_REQUEST)

    deleted, _ = product.images.filter(color__iexact=color).delete()
    create_audit_log(request=request, action='delete', model_name='ProductImage',
                     object_id=product.id, object_name=product.name,
                     changes={'color': color, 'deleted': deleted})
    return Response({'success': True, 'deleted': deleted})


# Public category views
@api_view(['GET'])
@permission_classes([AllowAny])
def category_tree(request):
    """Active category tree without empty branches"""
    try:
        return Response({'ok': True, 'items': get_public_category_tree()})
    except Exception as e:
        logger.error(f"Failed to build category tree: {str(e)}", exc_info=True)
        return _category_error('Не удалось загрузить категории', status.HTTP_500_INTERNAL_SERVER_ERROR)


def _breadcrumbs(category):
    chain = []
    node = category
    while node is not None:
        chain.append(node)
        node = node.parent
    crumbs = []
    for item in reversed(chain):
        public_path = url_path(item.path)
        crumbs.append({
            'name': item.name,
            'path': item.path,
            'href': f'/catalog/{public_path}' if public_path else '/catalog',
        })
    return crumbs


def _brief(node):
    return {
        'id': node['id'],
        'name': node['name'],
        'slug': node['slug'],
        'path': node['path'],
        'urlPath': node['urlPath'],
        'totalProductCount': node['totalProductCount'],
    }


@api_view(['GET'])
@permission_classes([AllowAny])
def category_by_path(request):
    """Category page data by public path, falling back to the parent path"""
    path = (request.query_params.get('path') or '').strip('/')
    if not path:
        return _category_error('Path parameter is required', status.HTTP_400_BAD_REQUEST)

    root = catalog_root()
    active = Category.objects.filter(is_active=True).select_related('parent')
    category = active.filter(path=f'{root}/{path}').first()
    fallback = False
    if category is None and '/' in path:
        parent_path = path.rsplit('/', 1)[0]
        category = active.filter(path=f'{root}/{parent_path}').first()
        fallback = category is not None
    if category is None:
        return _category_error('Категория не найдена', status.HTTP_404_NOT_FOUND)

    nodes = _index_nodes(load_tree(active_only=True))
    node = nodes.get(category.id)
    children = node['children'] if node else []
    subcategories = [_brief(child) for child in children if child['totalProductCount'] > 0]

    siblings_qs = active.filter(parent_id=category.parent_id).exclude(pk=category.pk).order_by('sort', 'name')
    siblings = [_brief(nodes[s.id]) for s in siblings_qs if s.id in nodes]

    return Response({
        'ok': True,
        'fallback': fallback,
        'category': {
            'id': category.id,
            'name': category.name,
            'slug': category.slug,
            'path': category.path,
            'urlPath': url_path(category.path),
            'seoTitle': category.seo_title,
            'seoDescription': category.seo_description,
            'seoH1': category.seo_h1,
            'seoCanonical': category.seo_canonical,
            'seoIntroHtml': category.seo_intro_html,
            'seoNoindex': category.seo_noindex,
            'totalProductCount': node['totalProductCount'] if node else 0,
        },
        'breadcrumbs': _breadcrumbs(category),
        'subcategories': subcategories,
        'siblings': siblings,
    })


# Catalog views
@api_view(['GET'])
@permission_classes([AllowAny])
def catalog_list(request):
    """Paginated public catalog with search, category, price and color filters"""
    queryset = Product.objects.filter(is_active=True).select_related('category').prefetch_related('images').order_by('-created_at')
    filterset = CatalogProductFilter(request.query_params, queryset=queryset)
    queryset = filterset.qs

    page_number = _parse_int(request.query_params.get('page'), 1)
    page_size = min(_parse_int(request.query_params.get('pageSize'), 20), 100)
    paginator = Paginator(queryset, page_size)
    page = paginator.get_page(page_number)

    search = (request.query_params.get('search') or '').strip()
    if search:
        record_search(request.user, search)

    serializer = CatalogProductSerializer(page.object_list, many=True)
    return Response({
        'products': serializer.data,
        'pagination': {
            'total': paginator.count,
            'page': page.number,
            'pageSize': page_size,
            'totalPages': paginator.num_pages,
        },
        'filters': {
            'search': search,
            'categoryId': request.query_params.get('categoryId', ''),
            'sortBy': request.query_params.get('sortBy', 'newest'),
            'minPrice': request.query_params.get('minPrice'),
            'maxPrice': request.query_params.get('maxPrice'),
            'colors': [c for c in (request.query_params.get('colors') or '').split(',') if c],
        },
    })


@api_view(['GET'])
@permission_classes([AllowAny])
def product_detail(request, slug):
    """Product card by slug"""
    product = get_object_or_404(
        Product.objects.select_related('category', 'provider').prefetch_related('images'),
        slug=slug, is_active=True,
    )
    return Response(ProductDetailSerializer(product).data)


@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def product_reviews(request, pk):
    """Published reviews with average rating, or submit a review"""
    if request.method == 'GET':
        reviews = Review.objects.filter(product_id=pk, is_published=True).order_by('-created_at')
        page_number = _parse_int(request.query_params.get('page'), 1)
        limit = _parse_int(request.query_params.get('limit'), 10)
        paginator = Paginator(reviews, limit)
        page = paginator.get_page(page_number)
        average = reviews.aggregate(avg=Avg('rating'))['avg'] or 0
        return Response({
            'reviews': ReviewSerializer(page.object_list, many=True).data,
            'totalReviews': paginator.count,
            'averageRating': round(float(average), 2),
            'page': page.number,
            'totalPages': paginator.num_pages,
        })

    serializer = ReviewSerializer(data=request.data)
    if not serializer.is_valid():
        first_error = next(iter(serializer.errors.values()))[0]
        return Response({'error': str(first_error), 'details': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
    product = Product.objects.filter(pk=pk).first()
    if product is None:
        return Response({'error': 'Product not found'}, status=status.HTTP_404_NOT_FOUND)
    review = serializer.save(product=product, is_verified=False, is_published=True)
    return Response(ReviewSerializer(review).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'DELETE'])
@permission_classes([AllowAny])
def search_history(request):
    """Recent distinct searches of the caller; DELETE clears one entry or all"""
    user = request.user
    if request.method == 'GET':
        if not user.is_authenticated:
            return Response({'searchHistory': []})
        return Response({'searchHistory': recent_searches(user)})

    if not user.is_authenticated:
        return Response({'error': 'Unauthorized'}, status=status.HTTP_401_UNAUTHORIZED)
    entries = SearchHistory.objects.filter(user=user)
    search_id = request.query_params.get('id')
    if search_id:
        entries = entries.filter(pk=search_id)
    entries.delete()
    return Response({'success': True})
