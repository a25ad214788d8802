# checkout/services/order_service.py
from sqlalchemy.orm import Session

from checkout.data.models.order import OrderModel
from checkout.domain.errors import NotFoundError, ValidationError
from checkout.domain.schemas import OrderItemOut, OrderOut, OrderPage
from checkout.repos.order_repo import OrderRepo
from checkout.services.catalog import CatalogLookup
from checkout.services.order_ledger import OrderLedger
from checkout.utils.settings import MAX_PAGE_SIZE
from checkout.utils.logging import get_logger

logger = get_logger(__name__)

UNKNOWN_PRODUCT = "Unknown Product"
UNKNOWN_PROVIDER = "Unknown Provider"


def check_pagination(page: int, page_size: int) -> None:
    # out-of-range values are rejected, never clamped
    if page is None or page < 1:
        raise ValidationError("Page must be 1 or greater", code="InvalidPage")
    if page_size is None or page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise ValidationError(
            f"Page size must be between 1 and {MAX_PAGE_SIZE}", code="InvalidPageSize"
        )


class OrderService:
    """
    Query side of orders.
    Status comes from the ledger and display names from Catalog Lookup at
    read time, so a renamed product shows up in the next read without
    touching history.
    """

    def __init__(self, db: Session, lookup: CatalogLookup):
        self.repo = OrderRepo(db)
        self.ledger = OrderLedger(db)
        self.lookup = lookup

    def get_order(self, order_id: int, customer_id: int | None = None) -> OrderOut:
        order = self.repo.get_order(order_id)

        if not order or (customer_id is not None and order.customer_id != customer_id):
            raise NotFoundError(f"Order {order_id} not found", code="OrderNotFound")

        return self.to_view(order)

    def list_orders_for_customer(self, customer_id: int, page: int, page_size: int) -> OrderPage:
        check_pagination(page, page_size)
        orders, total = self.repo.list_orders(page, page_size, customer_id=customer_id)
        return OrderPage(
            items=[self.to_view(o) for o in orders],
            total_count=total,
            page=page,
            page_size=page_size,
        )

    def list_orders(self, page: int, page_size: int, status_id: int | None = None) -> OrderPage:
        check_pagination(page, page_size)
        orders, total = self.repo.list_orders(page, page_size, status_id=status_id)
        return OrderPage(
            items=[self.to_view(o) for o in orders],
            total_count=total,
            page=page,
            page_size=page_size,
        )

    def to_view(self, order: OrderModel) -> OrderOut:
        product_names: dict = {}
        provider_names: dict = {}
        items = []

        for item in self.repo.get_order_items(order.id):
            if item.product_id not in product_names:
                product = self.lookup.get_product(item.product_id)
                product_names[item.product_id] = product.name if product else UNKNOWN_PRODUCT
            if item.provider_id not in provider_names:
                provider = self.lookup.get_provider(item.provider_id)
                provider_names[item.provider_id] = provider.name if provider else UNKNOWN_PROVIDER

            items.append(
                OrderItemOut(
                    id=item.id,
                    order_id=item.order_id,
                    product_id=item.product_id,
                    post_id=item.post_id,
                    product_name=product_names[item.product_id],
                    quantity=item.quantity,
                    price=item.price,
                    provider_id=item.provider_id,
                    provider_name=provider_names[item.provider_id],
                    current_status=self.ledger.current_item_status(item.id),
                    activities=self.ledger.item_history(item.id),
                )
            )

        return OrderOut(
            id=order.id,
            customer_id=order.customer_id,
            shipping_destination_id=order.shipping_destination_id,
            total_amount=order.total_amount,
            created_at=order.created_at,
            current_status=self.ledger.current_order_status(order.id),
            items=items,
            activities=self.ledger.order_history(order.id),
        )
