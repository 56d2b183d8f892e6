from .tenancy import Company, CompanyUser, Warehouse, COMPANY_ROLES
from .inventory import Product, StockLevel, StockMovement, MOVEMENT_TYPES
from .parties import Customer, Supplier
from .sales import SalesOrder, SalesOrderItem, OrderSequence, ORDER_STATUSES

__all__ = [
    'Company', 'CompanyUser', 'Warehouse', 'COMPANY_ROLES',
    'Product', 'StockLevel', 'StockMovement', 'MOVEMENT_TYPES',
    'Customer', 'Supplier',
    'SalesOrder', 'SalesOrderItem', 'OrderSequence', 'ORDER_STATUSES',
]
