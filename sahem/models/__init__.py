"""
Database models for Sahem Invest.

All models are exported here for convenient imports:
    from sahem.models import User, Project, ProfitDistributionRequest, etc.
"""

from sahem.models.audit import AuditAction, AuditLog
from sahem.models.base import Base, BaseModel, TimestampMixin
from sahem.models.distribution import (
    DistributionStatus,
    DistributionType,
    ProfitDistribution,
    ProfitDistributionRequest,
    RequestStatus,
)
from sahem.models.investment import Investment, InvestmentStatus
from sahem.models.notification import Notification
from sahem.models.outbox import OutboxMessage, OutboxStatus
from sahem.models.project import Project, ProjectStatus
from sahem.models.settings import SystemSetting
from sahem.models.transaction import Transaction, TransactionStatus, TransactionType
from sahem.models.user import User, UserRole

__all__ = [
    # Base
    "Base",
    "BaseModel",
    "TimestampMixin",
    # User
    "User",
    "UserRole",
    # Project
    "Project",
    "ProjectStatus",
    # Investment
    "Investment",
    "InvestmentStatus",
    # Distribution
    "ProfitDistributionRequest",
    "ProfitDistribution",
    "DistributionType",
    "DistributionStatus",
    "RequestStatus",
    # Ledger
    "Transaction",
    "TransactionType",
    "TransactionStatus",
    # Notifications
    "Notification",
    "OutboxMessage",
    "OutboxStatus",
    # Settings
    "SystemSetting",
    # Audit
    "AuditLog",
    "AuditAction",
]
