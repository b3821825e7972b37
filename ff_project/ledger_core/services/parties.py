from ..exceptions import NotFoundError
from ..models import Customer, CustomerTransaction, Vendor, VendorTransaction

# kind → (party model, ledger row model); kind is also the FK field name
PARTY_MODELS = {
    "customer": (Customer, CustomerTransaction),
    "vendor": (Vendor, VendorTransaction),
}


def _models_for(kind):
    try:
        return PARTY_MODELS[kind]
    except KeyError:
        raise NotFoundError(f"Unknown party kind {kind!r}")


def party_model(kind):
    return _models_for(kind)[0]


def transaction_model(kind):
    return _models_for(kind)[1]


def get_party(kind, party_id, lock=False):
    """Fetch a customer/vendor, optionally locking its row for the current transaction."""
    qs = party_model(kind).objects.all()
    if lock:
        qs = qs.select_for_update()
    try:
        return qs.get(pk=party_id)
    except party_model(kind).DoesNotExist:
        raise NotFoundError(f"{kind.capitalize()} {party_id} not found")
