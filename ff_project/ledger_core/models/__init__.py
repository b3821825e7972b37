from .account import ChartOfAccount
from .auditlog import AuditLog
from .customer import Customer
from .invoice import Invoice
from .journal import JournalEntry, JournalEntryLine
from .notes import CreditNote, DebitNote
from .payment import Payment
from .shipment import Shipment
from .transaction import CustomerTransaction, VendorTransaction
from .vendor import Vendor
