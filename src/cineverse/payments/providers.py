"""Mobile-money provider contract.

The MTN MoMo and Airtel Money HTTP APIs are external; a deployment
plugs in a ``PaymentProvider`` per method. ``SandboxProvider`` accepts
every request and is what development and tests run against.
"""

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

MTN = "mtn_mobile_money"
AIRTEL = "airtel_money"


@dataclass(frozen=True, slots=True)
class ProviderReceipt:
    """The provider's answer to a collection request."""

    external_id: str
    status: str = "pending"
    message: str = ""


class PaymentProvider(Protocol):
    name: str

    async def access_token(self) -> str: ...

    async def request_payment(
        self,
        reference: str,
        amount: Decimal,
        currency: str,
        phone: str,
        description: str,
        *,
        access_token: str,
    ) -> ProviderReceipt: ...


class SandboxProvider:
    """Accepts every collection and leaves it pending until a webhook arrives."""

    __slots__ = ("name", "requests", "token_requests")

    def __init__(self, name: str) -> None:
        self.name = name
        self.requests: list[tuple[str, Decimal, str, str]] = []
        self.token_requests = 0

    async def access_token(self) -> str:
        self.token_requests += 1
        return f"sandbox-{self.name}-{uuid.uuid4().hex}"

    async def request_payment(
        self,
        reference: str,
        amount: Decimal,
        currency: str,
        phone: str,
        description: str,
        *,
        access_token: str,
    ) -> ProviderReceipt:
        self.requests.append((reference, amount, currency, phone))
        return ProviderReceipt(external_id=uuid.uuid4().hex, message="Payment request accepted")
