"""Business logic services."""

from sahem.services.approval import approve_distribution_request
from sahem.services.review import reject_distribution_request
from sahem.services.submission import submit_distribution_request

__all__ = [
    "approve_distribution_request",
    "reject_distribution_request",
    "submit_distribution_request",
]
