from __future__ import annotations

from ..extensions import db
from lotpos.time_utils import to_utc_z


class Branch(db.Model):
    """
    A physical location that holds stock and books sales.

    WHY: Branch is the isolation unit. Every batch, order and ledger entry
    carries a branch_id, and callers are authorized per branch.
    """
    __tablename__ = "branches"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    code = db.Column(db.String(32), nullable=True, unique=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
