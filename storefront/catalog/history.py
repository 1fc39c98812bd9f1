import logging

from django.utils import timezone

from .models import SearchHistory

logger = logging.getLogger(__name__)

SEARCH_HISTORY_LIMIT = 10


def record_search(user, query):
    """Upsert a search query for the user (or anonymous), matching case-insensitively"""
    normalized = (query or '').strip()
    if not normalized:
        return None
    owner = user if user is not None and user.is_authenticated else None
    try:
        existing = SearchHistory.objects.filter(user=owner, query__iexact=normalized).first()
        if existing:
            SearchHistory.objects.filter(pk=existing.pk).update(query=normalized, created_at=timezone.now())
            return existing
        return SearchHistory.objects.create(user=owner, query=normalized)
    except Exception as e:
        # Search history never fails the catalog request
        logger.error(f"Failed to save search history: {str(e)}", exc_info=True)
        return None


def recent_searches(user, limit=SEARCH_HISTORY_LIMIT):
    """Most recent distinct queries, newest first"""
    seen = set()
    results = []
    for row in SearchHistory.objects.filter(user=user).order_by('-created_at').values('id', 'query', 'created_at'):
        key = row['query'].strip().lower()
        if not key or key in seen:
            continue
        seen.add(key)
        results.append({'id': row['id'], 'query': row['query'], 'createdAt': row['created_at']})
        if len(results) >= limit:
            break
    return results
