"""
Per-request access log for the ledger API.

One line per request, keyed by the route template rather than the raw path
so payment ids do not explode log cardinality. The ids the route matched
(payment_id, subject_id) and the gateway of a webhook delivery are logged
as fields:

    POST /api/v1/webhooks/razorpay 200 14ms request_id=req_1a2b3c4d5e6f provider=razorpay
    POST /api/v1/payments/{payment_id}/refund 409 9ms request_id=req_... payment_id=3f2c...

A gateway-supplied X-Request-ID is kept so retries can be traced end to end.
"""
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from payment_ledger.utils.constants import PaymentProvider

logger = logging.getLogger("payment_ledger.request")

REQUEST_ID_HEADER = "X-Request-ID"
LOGGED_PATH_PARAMS = ("payment_id", "subject_id")
WEBHOOK_PROVIDERS = {provider.value for provider in PaymentProvider}


def _request_context(request: Request) -> dict:
    context = {}
    path_params = request.scope.get("path_params") or {}
    for name in LOGGED_PATH_PARAMS:
        if name in path_params:
            context[name] = path_params[name]

    segments = request.url.path.rstrip("/").split("/")
    if len(segments) >= 2 and segments[-2] == "webhooks" and segments[-1] in WEBHOOK_PROVIDERS:
        context["provider"] = segments[-1]
    return context


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or f"req_{uuid.uuid4().hex[:12]}"
        request.state.request_id = request_id

        started = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        response.headers[REQUEST_ID_HEADER] = request_id

        # Set by the router once a route matched
        route = request.scope.get("route")
        path = getattr(route, "path_format", None) or request.url.path
        fields = {"request_id": request_id, **_request_context(request)}
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "%s %s %d %.0fms %s",
            request.method,
            path,
            response.status_code,
            elapsed_ms,
            " ".join(f"{key}={value}" for key, value in fields.items()),
        )
        return response
