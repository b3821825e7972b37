from django.core.exceptions import ValidationError


class NotFoundError(Exception):
    """Raised when a party, invoice, shipment or journal entry is absent."""
    pass


class UnbalancedJournalError(ValidationError):
    """Raised when a JournalEntry fails double-entry balance check."""
    pass


class ConsistencyWarning(UserWarning):
    """Emitted when no journal entry matches an edited transaction
    and a fresh one is created instead."""
    pass
