# backend/rentledger/errors.py
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class RentLedgerError(Exception):
    """
    Base class for business errors.

    Services raise these; the HTTP layer turns them into
    {"detail": <message>, "code": <code>} with the class status code.
    """

    status_code: int = 400
    code: str = "error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.code)
        self.message = str(message or self.code)


class Unauthenticated(RentLedgerError):
    status_code = 401
    code = "unauthenticated"


class Forbidden(RentLedgerError):
    status_code = 403
    code = "forbidden"


class NotFound(RentLedgerError):
    status_code = 404
    code = "not_found"


class PropertyNotFound(NotFound):
    code = "property_not_found"


class TenantNotFound(NotFound):
    code = "tenant_not_found"


class ScheduleNotFound(NotFound):
    code = "schedule_not_found"


class PaymentNotFound(NotFound):
    code = "payment_not_found"


class ValidationFailed(RentLedgerError):
    status_code = 422
    code = "validation_failed"


class PolicyDisabled(RentLedgerError):
    status_code = 409
    code = "policy_disabled"


class PolicyIncomplete(RentLedgerError):
    status_code = 422
    code = "policy_incomplete"


class InvalidEffectiveDate(RentLedgerError):
    status_code = 422
    code = "invalid_effective_date"


class ScheduleConflict(RentLedgerError):
    status_code = 409
    code = "schedule_conflict"


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RentLedgerError)
    async def _handle_rentledger_error(request: Request, exc: RentLedgerError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})
