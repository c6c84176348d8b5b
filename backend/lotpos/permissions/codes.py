# Overview: Typed permission codes checked by the authorization policy.

from enum import Enum


class Permission(str, Enum):
    """
    Capability codes.

    Values are the persisted role_permissions.permission_code strings, so a
    member compares equal to its raw code ("pos_access" == Permission.POS_ACCESS).
    """
    POS_ACCESS = "pos_access"
    SALE_VIEW_ALL = "sale_view_all"
    SALE_EDIT_PRICE = "sale_edit_price"
    SALE_CANCEL = "sale_cancel"
    SALE_DISCOUNT_APPROVE = "sale_discount_approve"
    DRAFT_MANAGE = "draft_manage"
    QUOTE_MANAGE = "quote_manage"
    PRODUCTION_VIEW_QUEUE = "production_view_queue"
    PRODUCTION_UPDATE_STATUS = "production_update_status"
    LEDGER_VIEW = "ledger_view"
    BRANCH_ACCESS_ALL = "branch_access_all"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, raw: str) -> "Permission | None":
        try:
            return cls(raw)
        except ValueError:
            return None
