"""Initial database schema

Revision ID: 000_initial_schema
Revises:
Create Date: 2026-10-18

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "000_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MONEY = sa.Numeric(15, 2)
PERCENT = sa.Numeric(7, 4)


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Create all initial tables."""

    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("role", sa.Enum("admin", "partner", "investor", name="userrole"), nullable=False),
        sa.Column("preferred_language", sa.String(5), server_default="en", nullable=False),
        sa.Column("is_active", sa.Boolean(), default=True, nullable=False),
        sa.Column("wallet_balance", MONEY, server_default="0", nullable=False),
        sa.Column("total_invested", MONEY, server_default="0", nullable=False),
        sa.Column("total_returns", MONEY, server_default="0", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # Deals
    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("funding_goal", MONEY, nullable=False),
        sa.Column("current_funding", MONEY, server_default="0", nullable=False),
        sa.Column(
            "status",
            sa.Enum("draft", "pending", "active", "funded", "completed", "cancelled", name="projectstatus"),
            nullable=False,
        ),
        *_timestamps(),
    )
    op.create_index("ix_projects_title", "projects", ["title"])
    op.create_index("ix_projects_owner_id", "projects", ["owner_id"])
    op.create_index("ix_projects_status", "projects", ["status"])

    op.create_table(
        "investments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("investor_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column(
            "status",
            sa.Enum("active", "completed", "cancelled", name="investmentstatus"),
            nullable=False,
        ),
        sa.Column("investment_date", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_investments_investor_id", "investments", ["investor_id"])
    op.create_index("ix_investments_project_id", "investments", ["project_id"])

    # Distribution requests
    op.create_table(
        "profit_distribution_requests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("partner_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("distribution_type", sa.Enum("PARTIAL", "FINAL", name="distributiontype"), nullable=False),
        sa.Column("total_amount", MONEY, nullable=False),
        sa.Column("estimated_gain_percent", PERCENT, nullable=False),
        sa.Column("estimated_closing_percent", PERCENT, nullable=False),
        sa.Column("estimated_profit", MONEY, nullable=False),
        sa.Column("estimated_return_capital", MONEY, nullable=False),
        sa.Column("sahem_invest_percent", PERCENT, server_default="0", nullable=False, comment="Platform commission percent"),
        sa.Column("reserved_gain_percent", PERCENT, server_default="0", nullable=False),
        sa.Column("sahem_invest_amount", MONEY, server_default="0", nullable=False),
        sa.Column("reserved_amount", MONEY, server_default="0", nullable=False),
        sa.Column("is_loss", sa.Boolean(), default=False, nullable=False),
        sa.Column(
            "status",
            sa.Enum("PENDING", "APPROVED", "REJECTED", name="requeststatus"),
            nullable=False,
        ),
        sa.Column("reviewed_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_profit_distribution_requests_project_id", "profit_distribution_requests", ["project_id"])
    op.create_index("ix_profit_distribution_requests_partner_id", "profit_distribution_requests", ["partner_id"])
    op.create_index("ix_profit_distribution_requests_status", "profit_distribution_requests", ["status"])

    op.create_table(
        "profit_distributions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("request_id", sa.Integer(), sa.ForeignKey("profit_distribution_requests.id"), nullable=False),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("investor_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("investment_id", sa.Integer(), sa.ForeignKey("investments.id"), nullable=False),
        sa.Column("amount", MONEY, nullable=False, comment="capital_amount + profit_amount"),
        sa.Column("capital_amount", MONEY, nullable=False),
        sa.Column("profit_amount", MONEY, nullable=False),
        sa.Column("profit_rate", PERCENT, nullable=False),
        sa.Column("investment_share", PERCENT, nullable=False),
        sa.Column("status", sa.Enum("PENDING", "COMPLETED", name="distributionstatus"), nullable=False),
        sa.Column("profit_period", sa.Enum("PARTIAL", "FINAL", name="distributiontype", create_type=False), nullable=False),
        sa.Column("distribution_date", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("request_id", "investor_id", name="uq_distribution_request_investor"),
    )
    op.create_index("ix_profit_distributions_request_id", "profit_distributions", ["request_id"])
    op.create_index("ix_profit_distributions_project_id", "profit_distributions", ["project_id"])
    op.create_index("ix_profit_distributions_investor_id", "profit_distributions", ["investor_id"])

    # Wallet ledger
    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("investment_id", sa.Integer(), sa.ForeignKey("investments.id"), nullable=True),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id"), nullable=True),
        sa.Column(
            "type",
            sa.Enum("DEPOSIT", "WITHDRAWAL", "INVESTMENT", "RETURN", "PROFIT_DISTRIBUTION", name="transactiontype"),
            nullable=False,
        ),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column(
            "status",
            sa.Enum("PENDING", "COMPLETED", "FAILED", "CANCELLED", name="transactionstatus"),
            nullable=False,
        ),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("reference", sa.String(100), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_transactions_user_id", "transactions", ["user_id"])
    op.create_index("ix_transactions_project_id", "transactions", ["project_id"])
    op.create_index("ix_transactions_type", "transactions", ["type"])
    op.create_index("ix_transactions_reference", "transactions", ["reference"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("is_read", sa.Boolean(), default=False, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_type", "notifications", ["type"])

    op.create_table(
        "outbox_messages",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("channel", sa.String(20), nullable=False),
        sa.Column("recipient", sa.String(255), nullable=False),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("status", sa.Enum("pending", "sent", "failed", name="outboxstatus"), nullable=False),
        sa.Column("attempts", sa.Integer(), default=0, nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_outbox_messages_recipient", "outbox_messages", ["recipient"])
    op.create_index("ix_outbox_messages_status", "outbox_messages", ["status"])

    op.create_table(
        "system_settings",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value", sa.JSON(), nullable=False),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "action",
            sa.Enum("submit_distribution", "approve_distribution", "reject_distribution", name="auditaction"),
            nullable=False,
        ),
        sa.Column("target_type", sa.String(50), nullable=True),
        sa.Column("target_id", sa.Integer(), nullable=True),
        sa.Column("action_metadata", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])


def downgrade() -> None:
    """Drop all tables."""
    for table in (
        "audit_logs",
        "system_settings",
        "outbox_messages",
        "notifications",
        "transactions",
        "profit_distributions",
        "profit_distribution_requests",
        "investments",
        "projects",
        "users",
    ):
        op.drop_table(table)

    for enum_name in (
        "auditaction",
        "outboxstatus",
        "transactionstatus",
        "transactiontype",
        "distributionstatus",
        "requeststatus",
        "distributiontype",
        "investmentstatus",
        "projectstatus",
        "userrole",
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
