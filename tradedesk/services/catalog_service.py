"""Catalog snapshot loading through the Redis cache."""
from flask import current_app

from tradedesk.models import CatalogSnapshot, TransactionKind
from tradedesk.services.backend_client import get_backend
from tradedesk.services.cache_service import get_cache

CACHE_MODULE = 'catalog'


def load_catalog(kind: TransactionKind) -> CatalogSnapshot:
    """Catalog for a form of the given kind, served from cache when fresh."""
    raw = get_cache().memoize(
        CACHE_MODULE,
        kind.value,
        lambda: get_backend().fetch_catalog(kind),
        ttl=current_app.config.get('CACHE_CATALOG_TTL', 60),
    )
    return CatalogSnapshot.from_api(raw or {})


def invalidate_catalog() -> None:
    """Drop every cached catalog; stock and prices change after a save."""
    cache = get_cache()
    for kind in TransactionKind:
        cache.delete(CACHE_MODULE, kind.value)
