"""
Caching for the public category tree.
Signals in signals.py invalidate it whenever categories or products change.
"""
import logging
import threading
from contextlib import contextmanager

from django.conf import settings
from django.core.cache import cache

from .tree import load_tree, prune_empty_branches

logger = logging.getLogger(__name__)

CATEGORY_TREE_CACHE_KEY = 'catalog:category_tree:public'

# Thread-local storage to track signal suspension
_thread_locals = threading.local()


@contextmanager
def suspend_cache_signals():
    """
    Temporarily suspend cache invalidation signals for bulk writes.
    The tree is invalidated once when the block exits.
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False
        invalidate_category_tree()


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


def invalidate_category_tree():
    try:
        cache.delete(CATEGORY_TREE_CACHE_KEY)
        logger.debug("Invalidated public category tree cache")
    except Exception as e:
        logger.error(f"Error invalidating category tree cache: {str(e)}")


def get_public_category_tree():
    """Active categories, pruned of empty branches, served from cache when warm"""
    tree = cache.get(CATEGORY_TREE_CACHE_KEY)
    if tree is not None:
        logger.debug("Cache HIT for category tree")
        return tree

    logger.debug("Cache MISS for category tree")
    tree = prune_empty_branches(load_tree(active_only=True))
    cache.set(CATEGORY_TREE_CACHE_KEY, tree, getattr(settings, 'CATEGORY_TREE_CACHE_TTL', 300))
    return tree
