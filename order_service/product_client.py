import logging
from collections.abc import Callable

import httpx
import pybreaker
from prometheus_client import Counter

from .config import Settings
from .exceptions import DownstreamUnavailableError, InsufficientStockError, ProductNotFoundError

PRODUCT_SERVICE_CALLS_TOTAL = Counter(
    "order_service_product_service_calls_total",
    "Total number of calls made to the product service",
    ["operation", "outcome"],
)

logger = logging.getLogger(__name__)

HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409


class _BreakerStateLogger(pybreaker.CircuitBreakerListener):
    def state_change(self, cb, old_state, new_state) -> None:
        logger.warning(
            "Product service breaker went from %s to %s",
            old_state.name if old_state else None,
            new_state.name,
        )


def build_breaker(fail_max: int, reset_timeout: float) -> pybreaker.CircuitBreaker:
    """Breaker for product service calls; 404 and 409 answers never trip it."""
    return pybreaker.CircuitBreaker(
        fail_max=fail_max,
        reset_timeout=reset_timeout,
        exclude=[ProductNotFoundError, InsufficientStockError],
        listeners=[_BreakerStateLogger()],
        name="product-service",
    )


class ProductServiceClient:
    """Stock check/reduce calls against the product service.

    The caller's bearer token is forwarded unchanged on every request so the
    product service can authorize the original user.
    """

    def __init__(self, http_client: httpx.Client, breaker: pybreaker.CircuitBreaker):
        self.http_client = http_client
        self.breaker = breaker

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProductServiceClient":
        http_client = httpx.Client(
            base_url=settings.PRODUCT_SERVICE_URL,
            timeout=settings.PRODUCT_SERVICE_TIMEOUT,
        )
        breaker = build_breaker(settings.CB_PRODUCT_FAIL_MAX, settings.CB_PRODUCT_RESET_TIMEOUT)
        logger.info(
            "Product service client for %s: fail_max=%s, reset_timeout=%s",
            settings.PRODUCT_SERVICE_URL,
            breaker.fail_max,
            breaker.reset_timeout,
        )
        return cls(http_client, breaker)

    def close(self) -> None:
        self.http_client.close()

    def check_stock(self, product_id: int, quantity: int, bearer_token: str) -> bool:
        def _do_request() -> bool:
            response = self.http_client.get(
                f"/products/{product_id}/stock",
                params={"quantity": quantity},
                headers=self._auth_headers(bearer_token),
            )
            if response.status_code == HTTP_NOT_FOUND:
                raise ProductNotFoundError(product_id)
            response.raise_for_status()
            return response.json() is True

        logger.debug("Checking stock for product %s quantity %s", product_id, quantity)
        return self._call("check_stock", product_id, _do_request)

    def reduce_stock(self, product_id: int, quantity: int, bearer_token: str) -> None:
        def _do_request() -> None:
            response = self.http_client.put(
                f"/products/{product_id}/reduce-stock",
                params={"quantity": quantity},
                headers=self._auth_headers(bearer_token),
            )
            if response.status_code == HTTP_NOT_FOUND:
                raise ProductNotFoundError(product_id)
            if response.status_code == HTTP_CONFLICT:
                raise InsufficientStockError(product_id)
            response.raise_for_status()

        logger.debug("Reducing stock for product %s by %s", product_id, quantity)
        self._call("reduce_stock", product_id, _do_request)

    @staticmethod
    def _auth_headers(bearer_token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {bearer_token}"}

    def _call(self, operation: str, product_id: int, request: Callable):
        try:
            result = self.breaker.call(request)
        except (ProductNotFoundError, InsufficientStockError):
            PRODUCT_SERVICE_CALLS_TOTAL.labels(operation=operation, outcome="rejected").inc()
            raise
        except pybreaker.CircuitBreakerError as e:
            PRODUCT_SERVICE_CALLS_TOTAL.labels(operation=operation, outcome="unavailable").inc()
            logger.exception("Product service circuit is open during %s for product %s", operation, product_id)
            msg = "Product service is currently unavailable."
            raise DownstreamUnavailableError(msg) from e
        except httpx.HTTPStatusError as e:
            PRODUCT_SERVICE_CALLS_TOTAL.labels(operation=operation, outcome="error").inc()
            logger.exception(
                "Product service returned %s during %s for product %s",
                e.response.status_code,
                operation,
                product_id,
            )
            msg = f"Product service responded with status {e.response.status_code}"
            raise DownstreamUnavailableError(msg) from e
        except (httpx.RequestError, ValueError) as e:
            PRODUCT_SERVICE_CALLS_TOTAL.labels(operation=operation, outcome="unavailable").inc()
            logger.exception("Product service request failed during %s for product %s", operation, product_id)
            msg = f"Product service request failed: {e}"
            raise DownstreamUnavailableError(msg) from e
        else:
            PRODUCT_SERVICE_CALLS_TOTAL.labels(operation=operation, outcome="ok").inc()
            return result
