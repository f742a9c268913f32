from urllib.parse import quote

import httpx
import structlog

from shared.exceptions import PaymentGatewayError
from .gateway import InitializeResult, PaymentGateway, VERIFY_FAILED, VERIFY_SUCCESS, VerifyResult

logger = structlog.get_logger(__name__)


class PaystackGateway(PaymentGateway):
    """Paystack REST adapter (transaction/initialize + transaction/verify)."""

    def __init__(self, secret_key: str, base_url: str, timeout: float = 10.0,
                 transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self.headers = {
            "Authorization": f"Bearer {secret_key}",
            "Content-Type": "application/json",
        }

    async def initialize(self, email, amount_minor_units, callback_url, metadata) -> InitializeResult:
        payload = {
            "email": email,
            "amount": amount_minor_units,
            "callback_url": callback_url,
            "metadata": metadata,
        }
        body = await self._request("POST", "/transaction/initialize", json=payload)

        data = body.get("data") or {}
        if not body.get("status") or not data.get("authorization_url"):
            logger.warning("paystack_initialize_rejected", message=body.get("message"))
            return InitializeResult(success=False, message=body.get("message"))

        return InitializeResult(
            success=True,
            authorization_url=data["authorization_url"],
            reference=data.get("reference"),
            access_code=data.get("access_code"),
        )

    async def verify(self, reference: str) -> VerifyResult:
        body = await self._request("GET", f"/transaction/verify/{quote(reference, safe='')}")

        data = body.get("data") or {}
        status = VERIFY_SUCCESS if body.get("status") and data.get("status") == "success" else VERIFY_FAILED
        # Paystack echoes metadata back as an object, or "" when none was sent
        metadata = data.get("metadata") if isinstance(data.get("metadata"), dict) else {}
        return VerifyResult(
            status=status,
            amount=data.get("amount"),
            metadata=metadata,
            raw=body,
        )

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            async with httpx.AsyncClient(
                headers=self.headers, timeout=self.timeout, transport=self.transport
            ) as client:
                resp = await client.request(method, f"{self.base_url}{path}", **kwargs)
        except httpx.HTTPError as e:
            logger.error("paystack_transport_error", path=path, error=str(e))
            raise PaymentGatewayError("Payment gateway unavailable") from e

        # Paystack answers declined/unknown transactions with 4xx + a JSON body
        # carrying status=false, which the callers treat as a normal failure.
        if resp.status_code >= 500:
            logger.error("paystack_server_error", path=path, status_code=resp.status_code)
            raise PaymentGatewayError("Payment gateway error")
        try:
            return resp.json()
        except ValueError as e:
            raise PaymentGatewayError("Malformed payment gateway response") from e
