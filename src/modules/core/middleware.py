import uuid
from contextvars import ContextVar
from typing import Callable

import structlog
from django.http import HttpRequest, HttpResponse

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

logger = structlog.get_logger()


class CorrelationIdMiddleware:
    """Bind a correlation ID (and the storefront, when given) to every log line.

    Reads the ``X-Request-ID`` header, generating a UUID4 when absent, and
    the optional ``X-Store-Id`` header sent by multi-storefront channel
    webhooks.  Both are bound into structlog's context variables for the
    duration of the request; the correlation ID is echoed back in the
    ``X-Request-ID`` response header.
    """

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        cid = request.META.get("HTTP_X_REQUEST_ID") or str(uuid.uuid4())
        correlation_id_var.set(cid)

        structlog.contextvars.clear_contextvars()
        context = {"correlation_id": cid}
        store = request.META.get("HTTP_X_STORE_ID")
        if store:
            context["store_reference"] = store
        structlog.contextvars.bind_contextvars(**context)

        logger.info(
            "request_started",
            method=request.method,
            path=request.get_full_path(),
        )

        response = self.get_response(request)

        logger.info(
            "request_finished",
            method=request.method,
            path=request.get_full_path(),
            status_code=response.status_code,
        )

        response["X-Request-ID"] = cid
        return response
