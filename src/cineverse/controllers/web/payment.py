"""Plan selection and the mobile-money checkout pages."""

from cineverse.controllers.web.base import PageController
from cineverse.controllers.web.layout import csrf_field, e, field_error
from cineverse.http.request import Request
from cineverse.http.response import Response
from cineverse.payments.providers import AIRTEL, MTN
from cineverse.payments.service import PaymentProviderError
from cineverse.validation import integer, required, validate

METHOD_LABELS = {MTN: "MTN Mobile Money", AIRTEL: "Airtel Money"}


class PaymentPages(PageController):
    __slots__ = ()

    async def plans(self, request: Request) -> Response:
        self.user(request)
        plans = await self.ctx.payments.plans()
        token = csrf_field(request)
        methods = "".join(f'<option value="{e(k)}">{e(v)}</option>' for k, v in METHOD_LABELS.items())
        cards = "".join(
            f"<section><h2>{e(p['name'])}</h2><p>{e(p['price'])} {e(p['currency'])} / {e(p['duration_days'])} days</p>"
            f"<ul>{''.join(f'<li>{e(f)}</li>' for f in p['features'])}</ul>"
            f'<form method="post" action="/payment/subscribe">{token}'
            f'<input type="hidden" name="plan_id" value="{e(p["id"])}">'
            f'<select name="payment_method">{methods}</select>'
            '<input type="tel" name="phone" placeholder="07XXXXXXXX">'
            "<button>Subscribe</button></form></section>"
            for p in plans
        )
        return self.page(request, "Choose a plan", cards + field_error(request, "phone"))

    async def subscribe(self, request: Request) -> Response:
        fields = validate(
            await request.input(),
            {"plan_id": [required, integer], "payment_method": [required], "phone": [required]},
        ).raise_for_errors()
        try:
            result = await self.ctx.payments.subscribe(
                self.user(request), int(fields["plan_id"]), fields["payment_method"], fields["phone"]
            )
        except PaymentProviderError as exc:
            return self.flash_redirect(request, "/payment/cancel", "error", exc.detail)
        request.session.set("pending_payment", result["reference"])
        return self.flash_redirect(request, "/payment/success", "info", result["message"])

    async def success(self, request: Request) -> Response:
        user = self.user(request)
        reference = request.session.get("pending_payment")
        status = ""
        if reference:
            page = await self.ctx.payments.transactions(user, 1, 1)
            latest = page["data"][0] if page["data"] else None
            if latest is not None and latest["reference"] == reference:
                status = f"<p>Payment {e(reference)} is {e(latest['status'])}.</p>"
        content = status + '<p>Once the payment is approved your plan is active. <a href="/dashboard">Go to your dashboard</a>.</p>'
        return self.page(request, "Payment submitted", content)

    async def cancel(self, request: Request) -> Response:
        self.user(request)
        request.session.remove("pending_payment")
        return self.page(request, "Payment not completed", '<p><a href="/payment/plans">Try again</a></p>')
