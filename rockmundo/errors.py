# rockmundo/errors.py
from __future__ import annotations


class RockmundoError(Exception):
    """Base for every error raised by the game rules."""

    status_code = 500


class NotFoundError(RockmundoError):
    status_code = 404


class ValidationError(RockmundoError):
    status_code = 400


class InsufficientFundsError(RockmundoError):
    status_code = 409

    def __init__(self, needed: float, available: float, what: str = "balance"):
        self.needed = needed
        self.available = available
        super().__init__(
            f"Insufficient {what}: need {needed:,.0f}, have {available:,.0f}")


class BackendError(RockmundoError):
    """The hosted database rejected a request; message is passed through."""

    status_code = 502
