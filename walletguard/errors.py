"""
Error taxonomy shared by the decision pipeline, the disposition state
machine, appeals and verification. Each error carries the HTTP status the
API layer renders it with.
"""


class WalletGuardError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(WalletGuardError):
    status_code = 400


class InsufficientFunds(ValidationError):
    pass


class AuthenticationError(WalletGuardError):
    status_code = 401


class AuthorizationError(WalletGuardError):
    status_code = 403


class NotFoundError(WalletGuardError):
    status_code = 404


class ConflictError(WalletGuardError):
    status_code = 409


class PersistenceFailure(WalletGuardError):
    status_code = 500


class AdvisorUnavailable(Exception):
    """Raised inside the advisor adapter only; converted to an opinion status."""

    def __init__(self, status: str, detail: str):
        super().__init__(detail)
        self.status = status
        self.detail = detail
