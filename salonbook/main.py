import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from salonbook.api.v1.bookings import router as bookings_router
from salonbook.application.exceptions import BookingError
from salonbook.core.config import settings
from salonbook.domain.entities.errors import ErrorKind

HTTP_STATUS_BY_KIND = {
    ErrorKind.conflict: 409,
    ErrorKind.duplicate: 409,
    ErrorKind.rate_limited: 429,
    ErrorKind.verification_failed: 400,
    ErrorKind.not_found: 404,
    ErrorKind.too_late_to_modify: 400,
    ErrorKind.network: 502,
    ErrorKind.unknown: 500,
}


class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in ("event_id", "procedure_id", "date", "status", "kind", "reason", "ip"):
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)

logger = logging.getLogger(__name__)

app = FastAPI(title=f"{settings.BUSINESS_NAME} booking", version="1.0.0")

app.include_router(bookings_router, prefix="/api/v1", tags=["bookings"])


@app.exception_handler(BookingError)
def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    info = exc.to_info()
    logger.warning(
        "Request failed",
        extra={"kind": info.kind.value, "reason": f"{request.method} {request.url.path}"},
    )
    return JSONResponse(
        status_code=HTTP_STATUS_BY_KIND.get(info.kind, 500),
        content={"error": info.message, "code": info.kind.value, "next_action": info.next_action.value},
    )


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
