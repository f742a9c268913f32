"""Configurable in-process payment gateway for development and tests."""
from uuid import uuid4

from .gateway import InitializeResult, PaymentGateway, VERIFY_FAILED, VERIFY_SUCCESS, VerifyResult


class FakeGateway(PaymentGateway):

    def __init__(self, base_url: str = "https://checkout.fake-gateway.test"):
        self.base_url = base_url
        self.should_succeed: bool = True
        self.verify_status: str = VERIFY_SUCCESS
        self.failure_reason: str = "Card declined"
        self.calls: list[dict] = []
        # reference -> {"amount": ..., "metadata": ...}
        self.transactions: dict[str, dict] = {}

    def configure(self, should_succeed: bool = True, verify_status: str = VERIFY_SUCCESS,
                  failure_reason: str = "Card declined") -> None:
        self.should_succeed = should_succeed
        self.verify_status = verify_status
        self.failure_reason = failure_reason

    async def initialize(self, email, amount_minor_units, callback_url, metadata) -> InitializeResult:
        self.calls.append({
            "method": "initialize",
            "email": email,
            "amount": amount_minor_units,
            "callback_url": callback_url,
            "metadata": metadata,
        })
        if not self.should_succeed:
            return InitializeResult(success=False, message=self.failure_reason)

        reference = f"fake_ref_{uuid4().hex[:12]}"
        access_code = f"fake_ac_{uuid4().hex[:8]}"
        self.transactions[reference] = {"amount": amount_minor_units, "metadata": dict(metadata)}
        return InitializeResult(
            success=True,
            authorization_url=f"{self.base_url}/{access_code}",
            reference=reference,
            access_code=access_code,
        )

    async def verify(self, reference: str) -> VerifyResult:
        self.calls.append({"method": "verify", "reference": reference})
        txn = self.transactions.get(reference)
        if txn is None:
            return VerifyResult(status=VERIFY_FAILED, raw={"message": "Transaction reference not found"})

        return VerifyResult(
            status=self.verify_status,
            amount=txn["amount"],
            metadata=txn["metadata"],
            raw={"reference": reference, "status": self.verify_status},
        )
