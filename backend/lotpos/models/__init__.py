from .branches import Branch
from .auth import User, Role, RolePermission, SessionToken
from .catalog import Product, ProductBranch, Recipe
from .inventory import InventoryBatch, ItemAssignment
from .sales import SalesOrder, SalesItem, Agent, AgentCommission
from .parties import Customer, Supplier, LedgerEntry
from .communications import Notification

__all__ = [
    'Branch',
    'User', 'Role', 'RolePermission', 'SessionToken',
    'Product', 'ProductBranch', 'Recipe',
    'InventoryBatch', 'ItemAssignment',
    'SalesOrder', 'SalesItem', 'Agent', 'AgentCommission',
    'Customer', 'Supplier', 'LedgerEntry',
    'Notification',
]
