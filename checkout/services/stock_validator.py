# checkout/services/stock_validator.py
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from checkout.domain.schemas import ProductInfo, StockShortfall
from checkout.services.catalog import CatalogLookup
from checkout.utils.logging import get_logger

logger = get_logger(__name__)

UNKNOWN_PRODUCT = "Unknown Product"


@dataclass
class StockCheck:
    shortfalls: List[StockShortfall] = field(default_factory=list)
    # snapshots of the products that were read, keyed by product id
    products: Dict[int, ProductInfo] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.shortfalls


def aggregate_demands(demands: Iterable[Tuple[int, int]]) -> "OrderedDict[int, int]":
    """Sum quantities per product, ascending product id."""
    totals: Dict[int, int] = {}
    for product_id, quantity in demands:
        totals[product_id] = totals.get(product_id, 0) + quantity
    return OrderedDict(sorted(totals.items()))


class StockValidator:
    """Read-only check of (product, quantity) demands against current stock.

    Products are read in ascending id order, so with a locking lookup two
    concurrent checkouts always acquire row locks in the same order.
    """

    def __init__(self, lookup: CatalogLookup):
        self.lookup = lookup

    def check(self, demands: Iterable[Tuple[int, int]]) -> StockCheck:
        result = StockCheck()

        for product_id, requested in aggregate_demands(demands).items():
            product = self.lookup.get_product(product_id)

            if product is None or not product.is_active:
                result.shortfalls.append(
                    StockShortfall(
                        product_id=product_id,
                        product_name=UNKNOWN_PRODUCT,
                        requested=requested,
                        available=0,
                    )
                )
                continue

            result.products[product_id] = product

            if product.available_quantity < requested:
                result.shortfalls.append(
                    StockShortfall(
                        product_id=product_id,
                        product_name=product.name,
                        requested=requested,
                        available=product.available_quantity,
                    )
                )

        if result.shortfalls:
            logger.info(f"Stock shortfall for products {[s.product_id for s in result.shortfalls]}")

        return result

    def validate(self, demands: Iterable[Tuple[int, int]]) -> List[StockShortfall]:
        return self.check(demands).shortfalls
