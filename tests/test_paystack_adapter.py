import json

import httpx
import pytest

from services.payment_service.paystack_adapter import PaystackGateway
from shared.exceptions import PaymentGatewayError


def gateway_for(handler) -> PaystackGateway:
    return PaystackGateway("sk_test_123", "https://api.paystack.test", transport=httpx.MockTransport(handler))


async def test_initialize_sends_amount_callback_and_metadata():
    seen = {}

    def handler(request: httpx.Request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={
            "status": True,
            "message": "Authorization URL created",
            "data": {"authorization_url": "https://checkout.paystack.test/abc", "access_code": "abc", "reference": "ref-1"},
        })

    result = await gateway_for(handler).initialize(
        email="ada@example.com",
        amount_minor_units=2500,
        callback_url="http://api.test/order/confirmation?orderId=o-1",
        metadata={"buyerId": "u-1", "orderId": "o-1"},
    )

    assert result.success
    assert result.reference == "ref-1"
    assert result.access_code == "abc"
    assert seen["url"] == "https://api.paystack.test/transaction/initialize"
    assert seen["auth"] == "Bearer sk_test_123"
    assert seen["body"]["amount"] == 2500
    assert seen["body"]["metadata"] == {"buyerId": "u-1", "orderId": "o-1"}


async def test_initialize_rejection_is_not_an_exception():
    def handler(request):
        return httpx.Response(401, json={"status": False, "message": "Invalid key"})

    result = await gateway_for(handler).initialize("a@b.c", 100, "http://cb", {})

    assert result.success is False
    assert result.message == "Invalid key"


@pytest.mark.parametrize(
    "payload, succeeded",
    [
        ({"status": True, "data": {"status": "success", "amount": 2500, "metadata": {"orderId": "o-1"}}}, True),
        ({"status": True, "data": {"status": "abandoned", "amount": 2500, "metadata": ""}}, False),
        ({"status": False, "message": "Transaction reference not found"}, False),
    ],
)
async def test_verify_maps_gateway_status(payload, succeeded):
    def handler(request):
        assert request.url.path == "/transaction/verify/ref-1"
        return httpx.Response(200, json=payload)

    result = await gateway_for(handler).verify("ref-1")

    assert result.succeeded is succeeded
    assert isinstance(result.metadata, dict)


async def test_server_errors_raise_gateway_error():
    def handler(request):
        return httpx.Response(502, text="bad gateway")

    with pytest.raises(PaymentGatewayError):
        await gateway_for(handler).verify("ref-1")


async def test_transport_errors_raise_gateway_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(PaymentGatewayError):
        await gateway_for(handler).initialize("a@b.c", 100, "http://cb", {})


async def test_verify_quotes_the_reference_into_one_path_segment():
    seen = {}

    def handler(request):
        seen["raw_path"] = request.url.raw_path
        return httpx.Response(200, json={"status": False, "message": "Transaction reference not found"})

    await gateway_for(handler).verify("../transaction/initialize?x=1")

    assert seen["raw_path"] == b"/transaction/verify/..%2Ftransaction%2Finitialize%3Fx%3D1"
