"""Slug and path helpers for catalog categories and products"""
import re

from django.conf import settings

from storefront.core.exceptions import SlugAllocationError

from .models import Category

CYRILLIC_TO_LATIN = {
    'а': 'a', 'б': 'b', 'в': 'v', 'г': 'g', 'д': 'd', 'е': 'e', 'ё': 'e',
    'ж': 'zh', 'з': 'z', 'и': 'i', 'й': 'y', 'к': 'k', 'л': 'l', 'м': 'm',
    'н': 'n', 'о': 'o', 'п': 'p', 'р': 'r', 'с': 's', 'т': 't', 'у': 'u',
    'ф': 'f', 'х': 'h', 'ц': 'ts', 'ч': 'ch', 'ш': 'sh', 'щ': 'sch', 'ъ': '',
    'ы': 'y', 'ь': '', 'э': 'e', 'ю': 'yu', 'я': 'ya',
}

MAX_SLUG_ATTEMPTS = 100


def slugify(value):
    """Transliterate Cyrillic and reduce to lowercase [a-z0-9-]"""
    if not value:
        return ''
    text = ''.join(CYRILLIC_TO_LATIN.get(ch, ch) for ch in str(value).lower())
    text = re.sub(r'[^a-z0-9]+', '-', text)
    text = re.sub(r'-+', '-', text)
    return text.strip('-')


def sanitize_segment(value):
    return slugify(value or '')


def sanitize_slug(parent_slug, candidate=None, fallback_name=None):
    """
    Build a category slug base.

    An explicit candidate wins; otherwise the parent slug is joined with the
    slugified name. Falls back to "category" when nothing usable is left.
    """
    base = candidate
    if not base:
        parts = []
        if parent_slug:
            parts.append(re.sub(r'-+', '-', parent_slug).strip('-'))
        parts.append(slugify(fallback_name or ''))
        base = '-'.join(p for p in parts if p)
    return slugify(base or '') or 'category'


def ensure_unique_slug(base, exclude_id=None, model=None, max_attempts=MAX_SLUG_ATTEMPTS):
    """
    Return `base` or the first free `base-N`.

    Raises SlugAllocationError once `max_attempts` candidates are taken.
    """
    model = model or Category
    base = base or 'category'
    slug = base
    suffix = 1
    while True:
        existing = model.objects.filter(slug=slug).values_list('id', flat=True).first()
        if existing is None or existing == exclude_id:
            return slug
        slug = f'{base}-{suffix}'
        suffix += 1
        if suffix > max_attempts:
            raise SlugAllocationError('Не удалось подобрать уникальный slug')


def capitalize_first_letter(value):
    if not value or not value.strip():
        return value
    trimmed = value.strip()
    return trimmed[0].upper() + trimmed[1:].lower()


def catalog_root():
    return getattr(settings, 'CATALOG_ROOT_PATH', 'obuv')


def url_path(path):
    """Public URL path of a category: the stored path without the catalog root"""
    return re.sub(rf'^{re.escape(catalog_root())}/?', '', path or '')


def last_segment(path):
    return (path or '').split('/')[-1]
