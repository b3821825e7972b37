from .account import ChartOfAccountAdmin
from .actions import post_journal_entries, recalculate_balances
from .auditlog import AuditLogAdmin
from .inlines import (CustomerTransactionInline, JournalEntryLineInline,
                      VendorTransactionInline)
from .invoice import (CreditNoteAdmin, DebitNoteAdmin, InvoiceAdmin,
                      PaymentAdmin, ShipmentAdmin)
from .journal import JournalEntryAdmin
from .parties import (CustomerAdmin, CustomerTransactionAdmin, VendorAdmin,
                      VendorTransactionAdmin)
