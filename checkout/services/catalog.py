# checkout/services/catalog.py
"""
Catalog Lookup: price, stock and provider of a product.

The catalog itself is owned by another service; here we only consume it.
Three implementations share the ``get_product`` / ``get_provider`` interface:

- ``SqlCatalogLookup`` reads the shared products table (optionally locking rows),
- ``ProductClient`` (product_client.py) calls product-service over HTTP,
- ``CachedCatalogLookup`` wraps either one with a Redis TTL cache.
"""
from typing import Protocol

import redis
from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from checkout.domain.schemas import ProductInfo, ProviderInfo
from checkout.repos.product_repo import ProductRepo
from checkout.services.product_client import ProductClient
from checkout.utils.retry import redis_retry
from checkout.utils.settings import (
    CATALOG_BACKEND,
    CATALOG_CACHE_ENABLED,
    CATALOG_CACHE_TTL_SECONDS,
    CATALOG_TIMEOUT_SECONDS,
    REDIS_URL,
)
from checkout.utils.logging import get_logger

logger = get_logger(__name__)


class CatalogLookup(Protocol):
    def get_product(self, product_id: int) -> ProductInfo | None: ...

    def get_provider(self, provider_id: int) -> ProviderInfo | None: ...


class SqlCatalogLookup:
    def __init__(self, db: Session, for_update: bool = False):
        self.repo = ProductRepo(db)
        self.for_update = for_update

    def get_product(self, product_id: int) -> ProductInfo | None:
        product = self.repo.get_product(product_id, for_update=self.for_update)
        if not product:
            return None
        return ProductInfo(
            id=product.id,
            name=product.name,
            price=product.price,
            available_quantity=product.quantity,
            provider_id=product.provider_id,
            is_active=product.is_active,
            version=product.version,
        )

    def get_provider(self, provider_id: int) -> ProviderInfo | None:
        provider = self.repo.get_provider(provider_id)
        if not provider:
            return None
        return ProviderInfo(id=provider.id, name=provider.business_name)


class CatalogCache:
    """
    Explicit catalog cache in Redis.
    -bounded TTL on every entry
    -invalidation by key (product/provider id)
    """

    def __init__(self, client: redis.Redis | None = None, ttl: int = CATALOG_CACHE_TTL_SECONDS):
        # bounded socket timeouts: a hung redis must end up in the RedisError fallback
        self.redis = client or redis.Redis.from_url(
            REDIS_URL,
            decode_responses=True,
            socket_timeout=CATALOG_TIMEOUT_SECONDS,
            socket_connect_timeout=CATALOG_TIMEOUT_SECONDS,
        )
        self.ttl = ttl

    @staticmethod
    def product_key(product_id: int) -> str:
        return f"catalog:product:{product_id}"

    @staticmethod
    def provider_key(provider_id: int) -> str:
        return f"catalog:provider:{provider_id}"

    @redis_retry()
    def get(self, key: str) -> str | None:
        return self.redis.get(key)

    @redis_retry()
    def set(self, key: str, value: str) -> None:
        self.redis.set(name=key, value=value, ex=self.ttl)

    @redis_retry()
    def invalidate(self, *keys: str) -> int:
        if not keys:
            return 0
        logger.info(f"Invalidating catalog cache keys {keys}")
        return self.redis.delete(*keys)

    def invalidate_product(self, product_id: int) -> int:
        return self.invalidate(self.product_key(product_id))

    def invalidate_provider(self, provider_id: int) -> int:
        return self.invalidate(self.provider_key(provider_id))


class CachedCatalogLookup:
    def __init__(self, inner: CatalogLookup, cache: CatalogCache):
        self.inner = inner
        self.cache = cache

    def _cached(self, key: str, model, load):
        try:
            raw = self.cache.get(key)
        except RedisError as e:
            logger.warning(f"Catalog cache read {key} failed, falling back: {e}")
            return load()

        if raw is not None:
            return model.model_validate_json(raw)

        value = load()
        if value is not None:
            try:
                self.cache.set(key, value.model_dump_json())
            except RedisError as e:
                logger.warning(f"Catalog cache write {key} failed: {e}")
        return value

    def get_product(self, product_id: int) -> ProductInfo | None:
        return self._cached(
            CatalogCache.product_key(product_id),
            ProductInfo,
            lambda: self.inner.get_product(product_id),
        )

    def get_provider(self, provider_id: int) -> ProviderInfo | None:
        return self._cached(
            CatalogCache.provider_key(provider_id),
            ProviderInfo,
            lambda: self.inner.get_provider(provider_id),
        )


def catalog_cache_from_settings() -> CatalogCache | None:
    return CatalogCache() if CATALOG_CACHE_ENABLED else None


def build_catalog_lookup(db: Session, cached: bool = False, cache: CatalogCache | None = None) -> CatalogLookup:
    """Catalog Lookup picked from settings.

    Uncached by default: prices taken into a cart and names in the order
    read model have to be current. ``cached=True`` is for display-only
    reads that may lag by up to the cache TTL.
    """
    if CATALOG_BACKEND == "http":
        lookup: CatalogLookup = ProductClient()
    else:
        lookup = SqlCatalogLookup(db)

    if cache is None and cached:
        cache = catalog_cache_from_settings()
    if cache is not None:
        return CachedCatalogLookup(lookup, cache)
    return lookup
