"""
Payment gateway port.

The order saga and the confirmation callback only talk to this interface, so
the Paystack adapter can be swapped for the in-process fake in development
and tests without touching either of them.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

VERIFY_SUCCESS = "success"
VERIFY_FAILED = "failed"


@dataclass(frozen=True)
class InitializeResult:
    success: bool
    authorization_url: str | None = None
    reference: str | None = None
    access_code: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class VerifyResult:
    status: str # success, failed
    amount: int | None = None # minor units
    metadata: dict = field(default_factory=dict)
    raw: dict = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == VERIFY_SUCCESS


class PaymentGateway(ABC):

    @abstractmethod
    async def initialize(
        self,
        email: str,
        amount_minor_units: int,
        callback_url: str,
        metadata: dict,
    ) -> InitializeResult:
        """Start a transaction and return where to send the buyer to pay."""
        ...

    @abstractmethod
    async def verify(self, reference: str) -> VerifyResult:
        """Look up the final state of a transaction by its reference."""
        ...
