"""
Monnify client wrapper using httpx sync client.
Handles the bearer token and hosted checkout initialization. Every
outbound call goes through the "gateway" circuit breaker; any transport
failure, 5xx or unsuccessful envelope is a GatewayError.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

import httpx
import pybreaker

from hotspot.core.config import settings
from hotspot.core.errors import GatewayError
from hotspot.services.circuit_breaker import get_circuit_breaker
from hotspot.utils.metrics import (
    gateway_requests_total,
    gateway_request_duration_seconds,
)


logger = logging.getLogger(__name__)

AUTH_PATH = "/api/v1/auth/login"
INIT_TRANSACTION_PATH = "/api/v1/merchant/transactions/init-transaction"


@dataclass
class Checkout:
    checkout_url: str
    payment_reference: str
    transaction_reference: str | None = None


class MonnifyClient:
    def __init__(
        self,
        http_client: httpx.Client | None = None,
        breaker: pybreaker.CircuitBreaker | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._api_key = settings.monnify_api_key
        self._secret_key = settings.monnify_secret_key
        self._contract_code = settings.monnify_contract_code
        self._base_url = settings.monnify_base_url
        self._client = http_client
        self._breaker = breaker
        self._clock = clock
        self._token: str | None = None
        self._token_expires_at = 0.0
        self._token_lock = threading.Lock()

    @property
    def client(self) -> httpx.Client:
        """Lazy initialization of httpx client."""
        if self._client is None:
            self._client = httpx.Client(base_url=self._base_url, timeout=settings.gateway_timeout)
        return self._client

    @property
    def breaker(self) -> pybreaker.CircuitBreaker:
        if self._breaker is None:
            self._breaker = get_circuit_breaker("gateway")
        return self._breaker

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _record_request(self, endpoint: str, status: str, duration: float) -> None:
        gateway_requests_total.labels(endpoint=endpoint, status=status).inc()
        gateway_request_duration_seconds.labels(endpoint=endpoint).observe(duration)

    def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        resp = self.client.request(method, path, **kwargs)
        if resp.status_code >= 500:
            # Counted by the breaker; 4xx are our own fault and are not
            raise GatewayError(f"gateway returned {resp.status_code}", detail={"path": path})
        return resp

    def _call(self, endpoint: str, method: str, path: str, **kwargs: Any) -> httpx.Response:
        start = time.time()
        try:
            resp = self.breaker.call(self._send, method, path, **kwargs)
        except pybreaker.CircuitBreakerError as exc:
            self._record_request(endpoint, "circuit_open", time.time() - start)
            raise GatewayError("payment gateway temporarily unavailable") from exc
        except GatewayError:
            self._record_request(endpoint, "error", time.time() - start)
            raise
        except httpx.HTTPError as exc:
            self._record_request(endpoint, "error", time.time() - start)
            logger.warning("gateway_transport_error", extra={"path": path, "error": str(exc)})
            raise GatewayError(f"gateway request failed: {type(exc).__name__}") from exc
        self._record_request(endpoint, str(resp.status_code), time.time() - start)
        return resp

    @staticmethod
    def _unwrap(resp: httpx.Response) -> dict[str, Any]:
        """Monnify envelope: {requestSuccessful, responseMessage, responseCode, responseBody}."""
        try:
            payload = resp.json()
        except ValueError as exc:
            raise GatewayError("gateway returned a non-JSON body") from exc
        if resp.status_code >= 400 or not payload.get("requestSuccessful"):
            message = payload.get("responseMessage") or f"HTTP {resp.status_code}"
            raise GatewayError(
                f"gateway rejected request: {message}",
                detail={"status_code": resp.status_code, "response_code": payload.get("responseCode")},
            )
        return payload.get("responseBody") or {}

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def authenticate(self, force: bool = False) -> str:
        """Bearer token, cached until shortly before the gateway says it expires."""
        with self._token_lock:
            if not force and self._token and self._clock() < self._token_expires_at:
                return self._token
            resp = self._call("auth", "POST", AUTH_PATH, auth=(self._api_key, self._secret_key))
            body = self._unwrap(resp)
            token = body.get("accessToken")
            if not token:
                raise GatewayError("gateway auth response carried no access token")
            expires_in = int(body.get("expiresIn") or 0)
            self._token = token
            self._token_expires_at = self._clock() + max(expires_in - settings.gateway_token_leeway, 0)
            return token

    def invalidate_token(self) -> None:
        with self._token_lock:
            self._token = None
            self._token_expires_at = 0.0

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def init_checkout(
        self,
        reference: str,
        amount: int,
        email: str,
        metadata: dict[str, Any],
        customer_name: str = "Hotspot customer",
        description: str = "WiFi access",
    ) -> Checkout:
        payload = {
            "amount": amount,
            "customerName": customer_name,
            "customerEmail": email,
            "paymentReference": reference,
            "paymentDescription": description,
            "currencyCode": settings.monnify_currency,
            "contractCode": self._contract_code,
            "redirectUrl": settings.payment_redirect_url,
            "paymentMethods": settings.payment_methods_list,
            "metaData": metadata,
        }
        resp = self._call(
            "init_transaction",
            "POST",
            INIT_TRANSACTION_PATH,
            json=payload,
            headers={"Authorization": f"Bearer {self.authenticate()}"},
        )
        if resp.status_code == 401:
            # Token revoked early on the gateway side; one fresh attempt
            self.invalidate_token()
            resp = self._call(
                "init_transaction",
                "POST",
                INIT_TRANSACTION_PATH,
                json=payload,
                headers={"Authorization": f"Bearer {self.authenticate(force=True)}"},
            )
        body = self._unwrap(resp)
        checkout_url = body.get("checkoutUrl")
        if not checkout_url:
            raise GatewayError("gateway response carried no checkout URL")
        return Checkout(
            checkout_url=checkout_url,
            payment_reference=body.get("paymentReference") or reference,
            transaction_reference=body.get("transactionReference"),
        )


_client: MonnifyClient | None = None
_client_lock = threading.Lock()


def get_gateway_client() -> MonnifyClient:
    """Process-wide client so the bearer token is shared across requests."""
    global _client
    with _client_lock:
        if _client is None:
            _client = MonnifyClient()
        return _client
