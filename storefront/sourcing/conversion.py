"""
Draft to catalog conversion.

A draft becomes a Product with its active images copied over. Product
creation and the draft status change happen in one transaction, so a draft
is never left processed without a product or converted twice.
"""
import logging
from decimal import Decimal

from django.db import transaction

from storefront.catalog.models import Product, ProductImage
from storefront.catalog.slugs import slugify
from storefront.core.exceptions import DraftConversionError

from .models import DraftProduct

logger = logging.getLogger(__name__)

MAX_PRODUCT_SLUG_SUFFIX = 50


def _get(item, key, default=None):
    if isinstance(item, dict):
        return item.get(key, default)
    return getattr(item, key, default)


def process_draft_images(images):
    """Active images only, primary first, then by sort"""
    active = [img for img in (images or []) if _get(img, 'is_active') is not False]
    return sorted(active, key=lambda img: (not bool(_get(img, 'is_primary')), _get(img, 'sort') or 0))


def process_draft_sizes(sizes):
    """Normalize draft size entries to [{"size": str, "count": int}]"""
    if not sizes or not isinstance(sizes, list):
        return []
    result = []
    for entry in sizes:
        if not isinstance(entry, dict):
            entry = {'size': str(entry)}
        size_name = entry.get('size') or entry.get('name') or 'Unknown'
        count = entry.get('count') or entry.get('stock') or 1
        result.append({'size': str(size_name), 'count': count})
    return result


def generate_unique_product_slug(name, draft_id):
    base_slug = slugify(f'{name or ""}-{str(draft_id)[:6]}') or f'product-{draft_id}'
    slug = base_slug
    for i in range(1, MAX_PRODUCT_SLUG_SUFFIX):
        if not Product.objects.filter(slug=slug).exists():
            break
        slug = f'{base_slug}-{i}'
    return slug


def build_product_data(draft, slug, images, sizes, source_ids=None, provider_id=None):
    """Field values for the Product created from `draft`"""
    return {
        'slug': slug,
        'name': draft.name or 'Без названия',
        'price_pair': draft.price_pair if draft.price_pair is not None else Decimal('0'),
        'currency': draft.currency or 'RUB',
        'material': draft.material,
        'gender': draft.gender,
        'season': draft.season,
        'description': draft.description,
        'source_message_ids': list(source_ids or []),
        'provider_id': provider_id,
        'category_id': draft.category_id,
        'sizes': sizes,
        'is_active': True,
    }


def convert_draft_to_product(draft):
    """
    Turn a draft into a catalog Product.

    Raises DraftConversionError when the draft is missing, already converted,
    has no active images or no category.
    """
    if draft is None:
        raise DraftConversionError('Draft not found')

    logger.info(f"Processing draft {draft.pk} ({draft.name}) for catalog conversion")

    with transaction.atomic():
        locked = DraftProduct.objects.select_for_update().filter(pk=draft.pk).first()
        if locked is None:
            raise DraftConversionError(f'Draft {draft.pk} not found')
        if locked.status == DraftProduct.STATUS_PROCESSED or locked.is_deleted:
            raise DraftConversionError(f'Draft {draft.pk} already converted')
        if not locked.category_id:
            raise DraftConversionError('Draft has no category')

        images = process_draft_images(list(locked.images.all()))
        if not images:
            logger.warning(f"No active images found for draft {locked.pk}, skipping")
            raise DraftConversionError('No active images found')

        sizes = process_draft_sizes(locked.sizes)
        source_ids = locked.source if isinstance(locked.source, list) else []
        slug = generate_unique_product_slug(locked.name, locked.pk)

        product = Product.objects.create(
            **build_product_data(locked, slug, images, sizes, source_ids, locked.provider_id)
        )
        ProductImage.objects.bulk_create([
            ProductImage(
                product=product,
                url=img.url,
                key=img.key,
                alt=img.alt,
                sort=img.sort or 0,
                is_primary=bool(img.is_primary),
                color=img.color,
                width=img.width,
                height=img.height,
            )
            for img in images
        ])

        locked.status = DraftProduct.STATUS_PROCESSED
        locked.is_deleted = True
        locked.save(update_fields=['status', 'is_deleted', 'updated_at'])

    logger.info(f"Converted draft {draft.pk} to product {product.pk} with {len(images)} images and {len(source_ids)} source messages")
    return product
