"""
In-app notifications for distribution outcomes.

Messages are rendered in the recipient's preferred language (Arabic or
English, English as fallback). Rows are added to the caller's session so
they commit or roll back with the financial change they describe.
"""

import logging
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from sahem.models import Notification

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"

PROFIT_RECEIVED = "PROFIT_RECEIVED"
CAPITAL_RETURNED = "CAPITAL_RETURNED"
LOSS_SETTLEMENT = "LOSS_SETTLEMENT"
DISTRIBUTION_APPROVED = "PROFIT_DISTRIBUTION_APPROVED"
DISTRIBUTION_REJECTED = "PROFIT_DISTRIBUTION_REJECTED"

MESSAGES: dict[str, dict[str, tuple[str, str]]] = {
    PROFIT_RECEIVED: {
        "en": (
            "New profits received",
            "${profit} in profit and ${capital} in capital from \"{deal}\" "
            "have been added to your wallet.",
        ),
        "ar": (
            "تم استلام أرباح جديدة",
            "تم إضافة {profit} دولار كأرباح و {capital} دولار كرأس مال "
            "من الصفقة \"{deal}\" إلى محفظتك.",
        ),
    },
    CAPITAL_RETURNED: {
        "en": (
            "Partial capital returned",
            "${capital} of your capital in \"{deal}\" has been returned "
            "to your wallet.",
        ),
        "ar": (
            "تم استرداد جزء من رأس المال",
            "تم إرجاع {capital} دولار من رأس مالك في الصفقة \"{deal}\" إلى محفظتك.",
        ),
    },
    LOSS_SETTLEMENT: {
        "en": (
            "Deal closed with a loss",
            "\"{deal}\" closed below its invested capital. ${capital} has been "
            "returned to your wallet.",
        ),
        "ar": (
            "تم إغلاق الصفقة بخسارة",
            "تم إغلاق الصفقة \"{deal}\" بأقل من رأس المال المستثمر. "
            "تم إرجاع {capital} دولار إلى محفظتك.",
        ),
    },
    DISTRIBUTION_APPROVED: {
        "en": (
            "Profit distribution approved",
            "Your distribution request for \"{deal}\" was approved and "
            "${total} was distributed to {investors} investors.",
        ),
        "ar": (
            "تم الموافقة على توزيع الأرباح",
            "تم الموافقة على طلب توزيع الأرباح للصفقة \"{deal}\" وتم توزيع "
            "{total} دولار على {investors} مستثمرين.",
        ),
    },
    DISTRIBUTION_REJECTED: {
        "en": (
            "Profit distribution rejected",
            "Your distribution request for \"{deal}\" was rejected. Reason: {reason}",
        ),
        "ar": (
            "تم رفض طلب توزيع الأرباح",
            "تم رفض طلب توزيع الأرباح للصفقة \"{deal}\". السبب: {reason}",
        ),
    },
}


def _format_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return f"{value:,.2f}"
    return value


def render_message(
    notification_type: str,
    language: Optional[str],
    **params: Any,
) -> tuple[str, str]:
    """Return (title, message) for a notification type in the given language."""
    templates = MESSAGES[notification_type]
    title, body = templates.get(language or DEFAULT_LANGUAGE, templates[DEFAULT_LANGUAGE])
    values = {key: _format_value(value) for key, value in params.items()}
    return title, body.format(**values)


def _json_safe(metadata: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    if metadata is None:
        return None
    return {
        key: float(value) if isinstance(value, Decimal) else value
        for key, value in metadata.items()
    }


def create_notification(
    db: AsyncSession,
    user_id: int,
    title: str,
    message: str,
    type: str = "info",
    metadata: Optional[dict[str, Any]] = None,
) -> Notification:
    """
    Add a notification to the session.

    Note: commit should happen in the calling context
    """
    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        notification_metadata=_json_safe(metadata),
        is_read=False,
    )
    db.add(notification)
    return notification


def notify_localized(
    db: AsyncSession,
    user_id: int,
    language: Optional[str],
    notification_type: str,
    metadata: Optional[dict[str, Any]] = None,
    **params: Any,
) -> Notification:
    """Render a templated message for the recipient and add it to the session."""
    title, message = render_message(notification_type, language, **params)
    return create_notification(
        db,
        user_id=user_id,
        title=title,
        message=message,
        type=notification_type,
        metadata=metadata,
    )
