from .auditlog import AuditLog
from .company import Company, CompanyMembership
from .counter import DocumentCounter
from .customer import Customer
from .document import CommercialDocument, DocumentLine
from .payment import Payment
from .product import Product
from .stock import StockMovement
from .supplier import Supplier
