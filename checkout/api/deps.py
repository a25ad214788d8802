from fastapi import Depends
from sqlalchemy.orm import Session

from checkout.data.database import get_db
from checkout.services.catalog import (
    CatalogCache,
    CatalogLookup,
    build_catalog_lookup,
    catalog_cache_from_settings,
)


def get_catalog_lookup(db: Session = Depends(get_db)) -> CatalogLookup:
    # pricing and the order read model, always current
    return build_catalog_lookup(db)


def get_cached_catalog_lookup(db: Session = Depends(get_db)) -> CatalogLookup:
    # display names in the cart view only
    return build_catalog_lookup(db, cached=True)


def get_catalog_cache() -> CatalogCache | None:
    return catalog_cache_from_settings()
