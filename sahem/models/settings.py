"""
SystemSetting model for application configuration.
"""

from typing import Any

from sqlalchemy import JSON, String
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column

from sahem.models.base import Base


class SystemSetting(Base):
    """
    Key-value store for admin-editable settings.

    Settings are stored as JSON values to support complex types.
    Default settings are created on application startup.

    Common keys:
    - admin_notification_email: Where distribution summaries are sent
    - notify_on_profit_distribution: Toggle for the admin email
    - default_sahem_invest_percent: Commission percent shown to partners
    - default_reserved_gain_percent: Reserve percent shown to partners
    """

    __tablename__ = "system_settings"

    key: Mapped[str] = mapped_column(
        String(100),
        primary_key=True,
    )
    value: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        comment="JSON value - use {'v': ...} wrapper for simple values",
    )

    def __repr__(self) -> str:
        return f"<SystemSetting(key='{self.key}')>"

    def get_value(self):
        """Get the actual value from the JSON wrapper."""
        if isinstance(self.value, dict) and "v" in self.value:
            return self.value["v"]
        return self.value

    def set_value(self, val):
        """Set value with JSON wrapper."""
        self.value = {"v": val}


async def get_setting_value(db: AsyncSession, key: str, default: Any = None) -> Any:
    """Read a setting, falling back to default when the key is missing."""
    setting = await db.get(SystemSetting, key)
    if setting is None:
        return default
    return setting.get_value()


async def ensure_default_settings(db: AsyncSession, defaults: dict[str, Any]) -> list[str]:
    """Create any missing settings. Returns the keys that were created."""
    created = []
    for key, value in defaults.items():
        existing = await db.get(SystemSetting, key)
        if not existing:
            db.add(SystemSetting(key=key, value={"v": value}))
            created.append(key)
    return created
