"""Exceptions raised by the executor.

All errors are raised synchronously to the caller of an action.
Nothing here is retried internally.
"""


class SafeSuperformError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(SafeSuperformError):
    """Missing chain id, API key, role key, signing account or a broken environment."""


class ValidationError(SafeSuperformError, ValueError):
    """A value given by the caller or fetched from the API did not pass validation."""


class CalldataDecodeError(ValidationError):
    """Calldata did not decode against the expected Solidity function."""


class TrustError(SafeSuperformError):
    """Signing account or Roles module wiring does not match what the caller asserted."""


class TransactionReverted(SafeSuperformError):
    """Roles transaction was mined, but its receipt reports a failure."""

    def __init__(self, message: str, tx_hash=None, receipt: dict | None = None):
        super().__init__(message)
        self.tx_hash = tx_hash
        self.receipt = receipt


class SuperformAPIError(SafeSuperformError):
    """Error returned by Superform API.

    Carries the HTTP status code, status text and the response body
    (or a placeholder if the body could not be read).
    """

    def __init__(self, message: str, status_code: int | None = None, reason: str | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason
        self.body = body
