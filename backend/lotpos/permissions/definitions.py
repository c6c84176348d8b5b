# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory
from .codes import Permission


# -- SALES --

SALES_PERMISSIONS = [
    (
        Permission.POS_ACCESS,
        "POS Access",
        "Create invoices, drafts and quotations at the point of sale",
        PermissionCategory.SALES,
    ),
    (
        Permission.SALE_VIEW_ALL,
        "View All Sales",
        "View sales created by any user",
        PermissionCategory.SALES,
    ),
    (
        Permission.SALE_EDIT_PRICE,
        "Edit Sale Price",
        "Sell at a unit price different from the product list price",
        PermissionCategory.SALES,
    ),
    (
        Permission.SALE_CANCEL,
        "Cancel Sale",
        "Cancel unpaid orders, restoring stock and ledger",
        PermissionCategory.SALES,
    ),
    (
        Permission.SALE_DISCOUNT_APPROVE,
        "Approve Discounts",
        "Approve or decline below-list-price invoices",
        PermissionCategory.SALES,
    ),
    (
        Permission.DRAFT_MANAGE,
        "Manage Drafts",
        "Edit, convert and delete draft orders",
        PermissionCategory.SALES,
    ),
    (
        Permission.QUOTE_MANAGE,
        "Manage Quotations",
        "Convert and delete quotations",
        PermissionCategory.SALES,
    ),
]


# -- PRODUCTION --

PRODUCTION_PERMISSIONS = [
    (
        Permission.PRODUCTION_VIEW_QUEUE,
        "View Production Queue",
        "View production queue, approvals and shipments",
        PermissionCategory.PRODUCTION,
    ),
    (
        Permission.PRODUCTION_UPDATE_STATUS,
        "Update Production Status",
        "Advance, approve, reject and deliver manufactured orders",
        PermissionCategory.PRODUCTION,
    ),
]


# -- ACCOUNTING --

ACCOUNTING_PERMISSIONS = [
    (
        Permission.LEDGER_VIEW,
        "View Ledger",
        "View customer and supplier ledgers",
        PermissionCategory.ACCOUNTING,
    ),
]


# -- SYSTEM --

SYSTEM_PERMISSIONS = [
    (
        Permission.BRANCH_ACCESS_ALL,
        "All Branch Access",
        "Transact for and view every branch",
        PermissionCategory.SYSTEM,
    ),
]


PERMISSION_DEFINITIONS = (
    SALES_PERMISSIONS
    + PRODUCTION_PERMISSIONS
    + ACCOUNTING_PERMISSIONS
    + SYSTEM_PERMISSIONS
)
