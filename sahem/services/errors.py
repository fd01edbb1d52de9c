"""
Domain errors for the distribution workflow.

Routes let these propagate; the handler registered in sahem.main renders
them as {"error": message, **extra} with the carried status code.
"""

from decimal import Decimal
from typing import Any, Optional


class DistributionError(Exception):
    """Base error with an HTTP status and optional extra response fields."""

    status_code = 400

    def __init__(self, message: str, extra: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.extra = extra or {}


class RequestNotFound(DistributionError):
    status_code = 404

    def __init__(self, message: str = "Request not found"):
        super().__init__(message)


class DealNotFound(DistributionError):
    status_code = 404


class RequestAlreadyProcessed(DistributionError):
    status_code = 400

    def __init__(self, message: str = "Request already processed"):
        super().__init__(message)


class InvalidDistribution(DistributionError):
    status_code = 400


class CapitalExceeded(DistributionError):
    """Proposed capital return is larger than what is left to distribute."""

    status_code = 400

    def __init__(self, message: str, remaining_capital: Decimal, max_total_amount: Decimal):
        super().__init__(
            message,
            extra={
                "remainingCapital": float(remaining_capital),
                "maxTotalAmount": float(max_total_amount),
            },
        )
        self.remaining_capital = remaining_capital
        self.max_total_amount = max_total_amount


class RequestForbidden(DistributionError):
    status_code = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)
