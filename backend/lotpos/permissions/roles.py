# Overview: Default permission sets per role.

from .codes import Permission

SUPER_ADMIN_ROLE = "Super Admin"

DEFAULT_ROLE_PERMISSIONS = {
    # Super Admin gets ALL permissions
    SUPER_ADMIN_ROLE: [p for p in Permission],
    "Branch Manager": [
        Permission.POS_ACCESS,
        Permission.SALE_VIEW_ALL,
        Permission.SALE_EDIT_PRICE,
        Permission.SALE_CANCEL,
        Permission.SALE_DISCOUNT_APPROVE,
        Permission.DRAFT_MANAGE,
        Permission.QUOTE_MANAGE,
        Permission.PRODUCTION_VIEW_QUEUE,
        Permission.PRODUCTION_UPDATE_STATUS,
        Permission.LEDGER_VIEW,
    ],
    "Cashier": [
        Permission.POS_ACCESS,
        Permission.SALE_EDIT_PRICE,
        Permission.DRAFT_MANAGE,
        Permission.QUOTE_MANAGE,
    ],
    "Production": [
        Permission.PRODUCTION_VIEW_QUEUE,
        Permission.PRODUCTION_UPDATE_STATUS,
    ],
}
