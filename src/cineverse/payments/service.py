"""Subscription billing over mobile money.

A subscription starts ``pending`` together with a ``pending``
transaction. The provider confirms asynchronously through a webhook;
a completed transaction activates the subscription for the plan's
duration.
"""

import json
import logging
import re
import secrets
import uuid
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from cineverse._internal.clock import to_db, utcnow
from cineverse.auth.models import User
from cineverse.cache.store import Cache
from cineverse.data.manager import DatabaseManager
from cineverse.errors import HTTPError, NotFound, ValidationError
from cineverse.payments.providers import AIRTEL, MTN, PaymentProvider

logger = logging.getLogger("cineverse.payments")

ACCESS_TOKEN_TTL = 3000
DEFAULT_CURRENCY = "RWF"

_NON_DIGITS = re.compile(r"\D")

# provider status -> transaction status
_WEBHOOK_STATUSES = {
    "SUCCESSFUL": "completed",
    "TS": "completed",
    "FAILED": "failed",
    "TF": "failed",
    "REJECTED": "failed",
    "PENDING": "pending",
    "TIP": "pending",
}

TRANSACTION_STATUSES = frozenset({"pending", "completed", "failed", "cancelled"})


class PaymentProviderError(HTTPError):
    """502: the provider refused or could not be reached."""

    def __init__(self, detail: str = "Payment provider unavailable") -> None:
        super().__init__(status=502, detail=detail)


def normalize_phone(number: str) -> str:
    """Rwandan MSISDN in international form (``2507XXXXXXXX``).

    Accepts ``7XXXXXXXX``, ``07XXXXXXXX`` and ``2507XXXXXXXX`` with any
    punctuation; everything else is rejected.

    Raises:
        ValidationError: On the ``phone`` field.
    """
    digits = _NON_DIGITS.sub("", number or "")
    if len(digits) == 9 and digits.startswith("7"):
        return f"250{digits}"
    if len(digits) == 10 and digits.startswith("07"):
        return f"250{digits[1:]}"
    if len(digits) == 12 and digits.startswith("2507"):
        return digits
    raise ValidationError.single("phone", "The phone number must be a valid Rwandan mobile number.")


def generate_reference(now: datetime | None = None) -> str:
    """``CV_<YYYYmmddHHMMSS>_<6 hex>``, unique enough to key a transaction."""
    moment = now or utcnow()
    return f"CV_{moment:%Y%m%d%H%M%S}_{secrets.token_hex(3).upper()}"


class PaymentService:
    """Plans, subscriptions and their payment transactions.

    Usage::

        payments = PaymentService(db, cache, {MTN: mtn_client, AIRTEL: airtel_client})
        result = await payments.subscribe(user, plan_id=2, method=MTN, phone="0788123456")
    """

    __slots__ = ("_clock", "cache", "db", "providers")

    def __init__(
        self,
        db: DatabaseManager,
        cache: Cache,
        providers: Mapping[str, PaymentProvider],
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.db = db
        self.cache = cache
        self.providers = dict(providers)
        self._clock = clock

    # -- Plans --

    async def plans(self) -> list[dict[str, Any]]:
        rows = await (
            self.db.table("subscription_plans").where("is_active", 1).order_by("sort_order").get()
        )
        return [_plan(row) for row in rows]

    async def plan(self, plan_id: int) -> dict[str, Any]:
        row = await self.db.table("subscription_plans").where("id", plan_id).where("is_active", 1).first()
        if row is None:
            raise NotFound("Subscription plan not found")
        return _plan(row)

    # -- Provider access --

    def provider(self, method: str) -> PaymentProvider:
        try:
            return self.providers[method]
        except KeyError:
            raise ValidationError.single("payment_method", "The selected payment method is invalid.") from None

    async def access_token(self, provider: PaymentProvider) -> str:
        """The provider's API token, fetched at most once per ``ACCESS_TOKEN_TTL``."""
        return await self.cache.remember(
            f"payments:{provider.name}:access_token", ACCESS_TOKEN_TTL, provider.access_token
        )

    # -- Subscribing --

    async def subscribe(self, user: User, plan_id: int, method: str, phone: str) -> dict[str, Any]:
        """Open a pending subscription and ask the provider to collect payment.

        Raises:
            ValidationError: Unknown method or malformed phone number.
            NotFound: Unknown or inactive plan.
            PaymentProviderError: The provider refused the request.
        """
        provider = self.provider(method)
        msisdn = normalize_phone(phone)
        plan = await self.plan(plan_id)
        amount = Decimal(str(plan["price"]))
        reference = generate_reference(self.now())
        description = f"CineVerse {plan['name']} subscription"

        async with self.db.transaction():
            subscription_id = await self.db.insert(
                "subscriptions",
                {"user_id": user.id, "plan_id": plan["id"], "status": "pending"},
            )
            await self.create_transaction(
                user_id=user.id,
                reference=reference,
                payment_method=method,
                amount=amount,
                currency=plan["currency"] or DEFAULT_CURRENCY,
                phone=msisdn,
                description=description,
                subscription_id=subscription_id,
                metadata={"plan_id": plan["id"], "plan": plan["slug"]},
            )

        try:
            receipt = await provider.request_payment(
                reference,
                amount,
                plan["currency"] or DEFAULT_CURRENCY,
                msisdn,
                description,
                access_token=await self.access_token(provider),
            )
        except HTTPError:
            await self.update_transaction_status(reference, "failed")
            raise
        except Exception as exc:
            logger.exception("Payment request %s via %s failed", reference, provider.name)
            await self.update_transaction_status(reference, "failed")
            raise PaymentProviderError() from exc

        await self.db.table("payment_transactions").where("reference", reference).update(
            {"external_transaction_id": receipt.external_id, "updated_at": to_db(self.now())}
        )
        if receipt.status != "pending":
            await self.update_transaction_status(reference, receipt.status, receipt.external_id)
        logger.info("Subscription %s for user %d awaiting %s", reference, user.id, provider.name)
        return {
            "reference": reference,
            "status": receipt.status,
            "amount": float(amount),
            "currency": plan["currency"] or DEFAULT_CURRENCY,
            "plan": plan,
            "message": receipt.message or "Payment request sent. Approve it on your phone.",
        }

    async def create_transaction(
        self,
        *,
        user_id: int,
        reference: str,
        payment_method: str,
        amount: Decimal,
        currency: str = DEFAULT_CURRENCY,
        transaction_type: str = "subscription",
        phone: str | None = None,
        description: str | None = None,
        external_id: str | None = None,
        subscription_id: int | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> int | None:
        return await self.db.insert(
            "payment_transactions",
            {
                "uuid": str(uuid.uuid4()),
                "reference": reference,
                "user_id": user_id,
                "subscription_id": subscription_id,
                "payment_method": payment_method,
                "transaction_type": transaction_type,
                "amount": float(amount),
                "currency": currency,
                "status": "pending",
                "external_transaction_id": external_id,
                "phone_number": phone,
                "description": description,
                "metadata": json.dumps(dict(metadata or {})),
            },
        )

    async def update_transaction_status(
        self, reference: str, status: str, external_id: str | None = None
    ) -> dict[str, Any]:
        """Move a transaction to *status*; ``completed`` activates its subscription.

        Raises:
            NotFound: No transaction with *reference*.
            ValidationError: Unknown status.
        """
        if status not in TRANSACTION_STATUSES:
            raise ValidationError.single("status", f"Unknown transaction status {status!r}")
        now = self.now()
        async with self.db.transaction():
            txn = await self.db.table("payment_transactions").where("reference", reference).first()
            if txn is None:
                raise NotFound("Transaction not found")
            changes: dict[str, Any] = {"status": status, "updated_at": to_db(now)}
            if external_id:
                changes["external_transaction_id"] = external_id
            if status == "completed":
                changes["processed_at"] = to_db(now)
            await self.db.update("payment_transactions", changes, {"id": txn["id"]})

            if txn["subscription_id"] is not None:
                if status == "completed" and txn["status"] != "completed":
                    await self._activate(txn["subscription_id"], txn["user_id"], now)
                elif status == "failed":
                    await self.db.update(
                        "subscriptions",
                        {"status": "failed", "updated_at": to_db(now)},
                        {"id": txn["subscription_id"]},
                    )
            return {**txn, **changes}

    async def _activate(self, subscription_id: int, user_id: int, now: datetime) -> None:
        sub = await self.db.table("subscriptions").where("id", subscription_id).first()
        plan = await self.db.table("subscription_plans").where("id", sub["plan_id"]).first() if sub else None
        days = int(plan["duration_days"]) if plan else 30
        # a new subscription replaces whatever the user had
        await (
            self.db.table("subscriptions")
            .where("user_id", user_id)
            .where("status", "active")
            .update({"status": "expired", "updated_at": to_db(now)})
        )
        await self.db.update(
            "subscriptions",
            {
                "status": "active",
                "starts_at": to_db(now),
                "ends_at": to_db(now + timedelta(days=days)),
                "updated_at": to_db(now),
            },
            {"id": subscription_id},
        )

    async def handle_webhook(self, provider: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Apply a provider callback.

        MTN posts ``{"externalId", "financialTransactionId", "status"}``;
        Airtel posts ``{"transaction": {"id", "airtel_money_id", "status_code"}}``.
        """
        if provider == MTN:
            reference = payload.get("externalId") or payload.get("reference")
            external_id = payload.get("financialTransactionId")
            raw_status = str(payload.get("status", "")).upper()
        elif provider == AIRTEL:
            body = payload.get("transaction") or {}
            reference = body.get("id") or payload.get("reference")
            external_id = body.get("airtel_money_id")
            raw_status = str(body.get("status_code", "")).upper()
        else:
            raise NotFound("Unknown payment provider")

        status = _WEBHOOK_STATUSES.get(raw_status)
        if not reference or status is None:
            raise ValidationError.single("payload", "Unrecognized webhook payload")
        logger.info("Webhook from %s: %s -> %s", provider, reference, status)
        return await self.update_transaction_status(str(reference), status, external_id)

    # -- Account views --

    async def current_subscription(self, user: User) -> dict[str, Any] | None:
        row = await (
            self.db.table("subscriptions")
            .select(
                "subscriptions.*",
                "subscription_plans.name AS plan_name",
                "subscription_plans.slug AS plan_slug",
            )
            .join("subscription_plans", "subscription_plans.id", "=", "subscriptions.plan_id")
            .where("subscriptions.user_id", user.id)
            .where("subscriptions.status", "active")
            .where("subscriptions.ends_at", ">", to_db(self.now()))
            .order_by("subscriptions.ends_at", "DESC")
            .first()
        )
        return row

    async def cancel_subscription(self, user: User) -> dict[str, Any]:
        current = await self.current_subscription(user)
        if current is None:
            raise NotFound("No active subscription")
        now = to_db(self.now())
        await self.db.update(
            "subscriptions",
            {"status": "cancelled", "cancelled_at": now, "updated_at": now},
            {"id": current["id"]},
        )
        return {**current, "status": "cancelled", "cancelled_at": now}

    async def transactions(self, user: User, page: int = 1, per_page: int = 15) -> dict[str, Any]:
        result = await (
            self.db.table("payment_transactions")
            .where("user_id", user.id)
            .order_by("id", "DESC")
            .paginate(page, per_page)
        )
        return result.to_dict()

    async def transaction(self, user: User, transaction_id: int) -> dict[str, Any]:
        row = await (
            self.db.table("payment_transactions")
            .where("id", transaction_id)
            .where("user_id", user.id)
            .first()
        )
        if row is None:
            raise NotFound("Transaction not found")
        return row

    def now(self) -> datetime:
        return self._clock()


def _plan(row: dict[str, Any]) -> dict[str, Any]:
    features = row.get("features")
    try:
        parsed = json.loads(features) if features else []
    except ValueError:
        parsed = []
    return {**row, "features": parsed}
