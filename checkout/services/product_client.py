# checkout/services/product_client.py
import requests
from requests import RequestException

from checkout.domain.errors import CatalogUnavailableError
from checkout.domain.schemas import ProductInfo, ProviderInfo
from checkout.utils.retry import http_retry
from checkout.utils.settings import CATALOG_TIMEOUT_SECONDS, PRODUCT_SERVICE_URL
from checkout.utils.logging import get_logger

logger = get_logger(__name__)


class ProductClient:
    """Catalog Lookup backed by the remote product-service."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or PRODUCT_SERVICE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else CATALOG_TIMEOUT_SECONDS

    @http_retry()
    def _fetch(self, path: str) -> dict | None:
        url = f"{self.base_url}{path}"
        logger.info(f"ProductClient GET {url}")

        resp = requests.get(url, timeout=self.timeout)
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return resp.json()

    def _get(self, path: str) -> dict | None:
        try:
            return self._fetch(path)
        except RequestException as e:
            # timeouts and 5xx after retries: caller may try again later
            logger.error(f"Catalog lookup {path} failed: {e}")
            raise CatalogUnavailableError(f"Catalog unavailable: {e}") from e

    def fetch_product(self, product_id: int) -> dict | None:
        return self._get(f"/products/{product_id}")

    def get_product(self, product_id: int) -> ProductInfo | None:
        data = self.fetch_product(product_id)
        if data is None:
            return None
        return ProductInfo(
            id=data["id"],
            name=data["name"],
            price=str(data["price"]),
            available_quantity=data["available_quantity"],
            provider_id=data["provider_id"],
            is_active=data.get("is_active", True),
            version=data.get("version", 1),
        )

    def get_provider(self, provider_id: int) -> ProviderInfo | None:
        data = self._get(f"/providers/{provider_id}")
        if data is None:
            return None
        return ProviderInfo(id=data["id"], name=data["name"])
