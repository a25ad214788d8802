# checkout/repos/product_repo.py
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from checkout.data.models.product import ProductModel, ProviderModel


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int, for_update: bool = False) -> ProductModel | None:
        stmt = select(ProductModel).where(ProductModel.id == product_id)
        if for_update:
            # row lock held until the checkout transaction ends (no-op on sqlite),
            # always re-read so a locked row never comes back stale from the identity map
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_provider(self, provider_id: int) -> ProviderModel | None:
        return self.db.get(ProviderModel, provider_id)

    def decrement_quantity(self, product_id: int, quantity: int, expected_version: int) -> int:
        """Take ``quantity`` units off the shelf if nobody touched the row since it was read.

        Returns the number of rows updated; 0 means the version moved on or the
        stock is no longer there.
        """
        result = self.db.execute(
            update(ProductModel)
            .where(
                ProductModel.id == product_id,
                ProductModel.version == expected_version,
                ProductModel.quantity >= quantity,
            )
            .values(
                quantity=ProductModel.quantity - quantity,
                version=ProductModel.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
