from .actions import (cancel_invoices, consolidate_delivery_notes,
                      credit_invoices, send_documents)
from .auditlog import AuditLogAdmin
from .catalog import (CompanyAdmin, CompanyMembershipAdmin, CustomerAdmin,
                      ProductAdmin, StockMovementAdmin, SupplierAdmin)
from .documents import CommercialDocumentAdmin, DocumentCounterAdmin, PaymentAdmin
from .inlines import DocumentLineInline, PaymentInline
from .mixins import TenantAdminMixin
