"""Tests for cineverse.payments: phone numbers, references, and the subscription lifecycle."""

import re
from datetime import UTC, datetime
from decimal import Decimal

import pytest

from cineverse.app import App
from cineverse.auth.models import User
from cineverse.errors import NotFound, ValidationError
from cineverse.payments.providers import AIRTEL, MTN, ProviderReceipt, SandboxProvider
from cineverse.payments.service import (
    PaymentProviderError,
    PaymentService,
    generate_reference,
    normalize_phone,
)
from cineverse.testing import TestClient

from conftest import register


class BrokenProvider:
    name = MTN

    async def access_token(self) -> str:
        return "token"

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
        raise ConnectionError("provider down")


@pytest.fixture
async def user(app: App, client: TestClient) -> User:
    data = await register(client, "payer")
    found = await app.context.auth.find(data["id"])
    assert found is not None
    return found


def _service(app: App, provider) -> PaymentService:
    return PaymentService(app.context.db, app.context.cache, {provider.name: provider})


class TestNormalizePhone:
    @pytest.mark.parametrize(
        "raw",
        ["788123456", "0788123456", "250788123456", "+250 788 123 456", "078-812-3456"],
    )
    def test_accepted_forms(self, raw: str) -> None:
        assert normalize_phone(raw) == "250788123456"

    @pytest.mark.parametrize("raw", ["", "12345", "0688123456", "254788123456", "07881234567"])
    def test_rejected_forms(self, raw: str) -> None:
        with pytest.raises(ValidationError) as exc_info:
            normalize_phone(raw)
        assert "phone" in exc_info.value.errors


class TestReference:
    def test_format(self) -> None:
        reference = generate_reference(datetime(2026, 3, 1, 9, 30, 5, tzinfo=UTC))
        assert re.fullmatch(r"CV_20260301093005_[0-9A-F]{6}", reference)

    def test_unique(self) -> None:
        moment = datetime(2026, 3, 1, tzinfo=UTC)
        assert generate_reference(moment) != generate_reference(moment)


class TestSubscribe:
    async def test_pending_until_webhook(self, app: App, user: User) -> None:
        provider = SandboxProvider(MTN)
        payments = _service(app, provider)
        result = await payments.subscribe(user, plan_id=1, method=MTN, phone="0788123456")
        assert result["status"] == "pending"
        assert result["amount"] == 3000.0
        assert provider.requests[0][3] == "250788123456"
        assert await payments.current_subscription(user) is None

        await payments.handle_webhook(
            MTN, {"externalId": result["reference"], "financialTransactionId": "F1", "status": "SUCCESSFUL"}
        )
        current = await payments.current_subscription(user)
        assert current is not None
        assert current["plan_slug"] == "basic"

    async def test_access_token_cached(self, app: App, user: User) -> None:
        provider = SandboxProvider(MTN)
        payments = _service(app, provider)
        await payments.subscribe(user, plan_id=1, method=MTN, phone="0788123456")
        await payments.subscribe(user, plan_id=1, method=MTN, phone="0788123456")
        assert provider.token_requests == 1

    async def test_provider_failure(self, app: App, user: User) -> None:
        payments = _service(app, BrokenProvider())
        with pytest.raises(PaymentProviderError) as exc_info:
            await payments.subscribe(user, plan_id=1, method=MTN, phone="0788123456")
        assert exc_info.value.status == 502

        page = await payments.transactions(user)
        assert page["data"][0]["status"] == "failed"

    async def test_unconfigured_method(self, app: App, user: User) -> None:
        payments = _service(app, SandboxProvider(MTN))
        with pytest.raises(ValidationError):
            await payments.subscribe(user, plan_id=1, method=AIRTEL, phone="0788123456")

    async def test_unknown_plan(self, app: App, user: User) -> None:
        payments = _service(app, SandboxProvider(MTN))
        with pytest.raises(NotFound):
            await payments.subscribe(user, plan_id=999, method=MTN, phone="0788123456")


class TestWebhook:
    async def test_new_subscription_replaces_active(self, app: App, user: User) -> None:
        payments = _service(app, SandboxProvider(MTN))
        for plan_id in (1, 3):
            result = await payments.subscribe(user, plan_id=plan_id, method=MTN, phone="0788123456")
            await payments.handle_webhook(MTN, {"externalId": result["reference"], "status": "SUCCESSFUL"})

        active = await (
            app.context.db.table("subscriptions").where("user_id", user.id).where("status", "active").get()
        )
        assert len(active) == 1
        assert (await payments.current_subscription(user))["plan_slug"] == "premium"

    async def test_unrecognized_status(self, app: App, user: User) -> None:
        payments = _service(app, SandboxProvider(MTN))
        result = await payments.subscribe(user, plan_id=1, method=MTN, phone="0788123456")
        with pytest.raises(ValidationError):
            await payments.handle_webhook(MTN, {"externalId": result["reference"], "status": "MAYBE"})

    async def test_unknown_provider(self, app: App) -> None:
        payments = _service(app, SandboxProvider(MTN))
        with pytest.raises(NotFound):
            await payments.handle_webhook("paypal", {})

    async def test_unknown_status_name(self, app: App) -> None:
        payments = _service(app, SandboxProvider(MTN))
        with pytest.raises(ValidationError):
            await payments.update_transaction_status("CV_X", "refunded")
