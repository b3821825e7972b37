from django.db import models

# -----------------------------------------
# Queryset helpers shared by the ledger models
# -----------------------------------------
class PartyQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)

    def with_credit(self):
        # parties holding a positive balance on account
        return self.filter(current_balance__gt=0)


class PartyManager(models.Manager):
    def get_queryset(self):
        return PartyQuerySet(self.model, using=self._db)

    def active(self):
        return self.get_queryset().active()


class TransactionQuerySet(models.QuerySet):
    def for_party(self, kind, party_id):
        # kind is the FK field name: "customer" or "vendor"
        return self.filter(**{f"{kind}_id": party_id})

    def starting_balances(self):
        return self.filter(reference__startswith="STARTING-BALANCE")

    def for_invoice(self, invoice_number):
        return self.filter(invoice=invoice_number)

    def invoice_debits(self, invoice_number, reference=None):
        # the row first recorded for an invoice carries its number as reference,
        # credit applied to it carries CREDIT-<invoice>
        return self.filter(
            type="DEBIT", invoice=invoice_number, reference=reference or invoice_number
        ).order_by("created_at", "id")

    def for_payment(self, payment):
        return self.filter(payment=payment).order_by("created_at", "id")


class TransactionManager(models.Manager):
    def get_queryset(self):
        return TransactionQuerySet(self.model, using=self._db)

    def for_party(self, kind, party_id):
        return self.get_queryset().for_party(kind, party_id)


class JournalEntryQuerySet(models.QuerySet):
    def posted(self):
        return self.filter(is_posted=True)

    def for_source(self, source_type, invoice_number):
        # explicit link written by the journal generator
        return self.filter(source_type=source_type, source_invoice=invoice_number)


class JournalEntryManager(models.Manager):
    def get_queryset(self):
        return JournalEntryQuerySet(self.model, using=self._db)

    def for_source(self, source_type, invoice_number):
        return self.get_queryset().for_source(source_type, invoice_number)
