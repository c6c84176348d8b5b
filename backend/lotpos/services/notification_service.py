# Overview: Notification sink and approver fan-out.

from __future__ import annotations

from typing import Protocol

from ..extensions import db
from ..models import Notification, Role, RolePermission, User
from ..permissions import Permission, SUPER_ADMIN_ROLE
from lotpos.money import format_amount
from lotpos.time_utils import utcnow


DISCOUNT_APPROVAL_REQUEST = "discount_approval_request"
SALES_ORDER_REFERENCE = "sales_order"


class NotificationSink(Protocol):
    def send(
        self,
        *,
        user_id: int,
        type: str,
        title: str,
        message: str,
        reference: dict | None = None,
    ) -> None: ...


class DatabaseNotificationSink:
    """Writes Notification rows in the caller's transaction (no commit)."""

    def send(self, *, user_id, type, title, message, reference=None):
        reference = reference or {}
        db.session.add(Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            reference_type=reference.get("type"),
            reference_id=reference.get("id"),
        ))


default_sink = DatabaseNotificationSink()


def users_with_permission(permission: Permission) -> list[int]:
    """Active users whose role grants permission, plus every Super Admin."""
    rows = (
        db.session.query(User.id)
        .join(Role, User.role_id == Role.id)
        .outerjoin(
            RolePermission,
            (RolePermission.role_id == Role.id) & (RolePermission.permission_code == permission.value),
        )
        .filter(User.is_active.is_(True))
        .filter((Role.name == SUPER_ADMIN_ROLE) | (RolePermission.id.isnot(None)))
        .distinct()
        .order_by(User.id)
        .all()
    )
    return [r[0] for r in rows]


def notify_discount_approvers(order, *, sink: NotificationSink | None = None) -> int:
    """Tell every discount approver that order awaits a decision. Returns count sent."""
    sink = sink or default_sink
    sent = 0
    for user_id in users_with_permission(Permission.SALE_DISCOUNT_APPROVE):
        sink.send(
            user_id=user_id,
            type=DISCOUNT_APPROVAL_REQUEST,
            title="Discount approval required",
            message=(
                f"Invoice {order.invoice_number} has a discount of "
                f"{format_amount(order.total_discount)} awaiting approval"
            ),
            reference={"type": SALES_ORDER_REFERENCE, "id": order.id},
        )
        sent += 1
    return sent


def mark_reference_read(reference_type: str, reference_id: int, type: str | None = None) -> int:
    """Close unread notifications about a record. Returns rows updated."""
    q = db.session.query(Notification).filter_by(
        reference_type=reference_type, reference_id=reference_id, is_read=False
    )
    if type is not None:
        q = q.filter_by(type=type)
    return q.update({"is_read": True, "read_at": utcnow()}, synchronize_session=False)


def list_for_user(user_id: int, *, unread_only: bool = False, limit: int = 50) -> list[Notification]:
    q = db.session.query(Notification).filter_by(user_id=user_id)
    if unread_only:
        q = q.filter_by(is_read=False)
    return q.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def mark_read(notification_id: int, user_id: int) -> bool:
    note = db.session.query(Notification).filter_by(id=notification_id, user_id=user_id).first()
    if not note:
        return False
    if not note.is_read:
        note.is_read = True
        note.read_at = utcnow()
    db.session.commit()
    return True
