"""
Domain errors raised by the ledger services.

All of them subclass ValueError so callers that only care about "the
request was refused" can keep catching ValueError. Routers never build
HTTPExceptions for these; the handler registered in app.main renders them.
"""


class LedgerError(ValueError):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    status_code = 400


class ConflictError(LedgerError):
    status_code = 400


class AuthorizationError(LedgerError):
    status_code = 403


class NotFoundError(LedgerError):
    status_code = 404
