"""``/api/v1/payment`` and the provider webhooks."""

import logging

from cineverse.controllers.base import Controller
from cineverse.http.request import Request
from cineverse.http.response import Response
from cineverse.payments.providers import AIRTEL, MTN
from cineverse.validation import integer, required, validate

logger = logging.getLogger("cineverse.payments")


class PaymentController(Controller):
    __slots__ = ()

    async def plans(self, request: Request) -> Response:
        return Response.success(await self.ctx.payments.plans())

    async def subscribe(self, request: Request) -> Response:
        fields = validate(
            await request.input(),
            {
                "plan_id": [required, integer],
                "payment_method": [required],
                "phone": [required],
            },
        ).raise_for_errors()
        result = await self.ctx.payments.subscribe(
            self.user(request), int(fields["plan_id"]), fields["payment_method"], fields["phone"]
        )
        return Response.success(result, result["message"], status=202)

    async def subscription(self, request: Request) -> Response:
        current = await self.ctx.payments.current_subscription(self.user(request))
        return Response.success({"subscription": current})

    async def cancel_subscription(self, request: Request) -> Response:
        cancelled = await self.ctx.payments.cancel_subscription(self.user(request))
        return Response.success({"subscription": cancelled}, "Subscription cancelled")

    async def transactions(self, request: Request) -> Response:
        page, per_page = self.page_params(request, per_page=15)
        return Response.success(await self.ctx.payments.transactions(self.user(request), page, per_page))

    async def transaction(self, request: Request, transaction_id: int) -> Response:
        return Response.success(await self.ctx.payments.transaction(self.user(request), transaction_id))


class WebhookController(Controller):
    """Provider callbacks. Unauthenticated; the payload is matched by reference."""

    __slots__ = ()

    async def mtn(self, request: Request) -> Response:
        payload = await request.json() or {}
        txn = await self.ctx.payments.handle_webhook(MTN, payload)
        return Response.success({"reference": txn["reference"], "status": txn["status"]})

    async def airtel(self, request: Request) -> Response:
        payload = await request.json() or {}
        txn = await self.ctx.payments.handle_webhook(AIRTEL, payload)
        return Response.success({"reference": txn["reference"], "status": txn["status"]})
