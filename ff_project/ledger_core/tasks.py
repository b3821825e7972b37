import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task  # register this function as a Celery task
def reconcile_all_balances():
    """
    Periodic safety net for ledger drift: recompute every customer's and
    vendor's balances in voucher-date order.
    """
    # import services lazily to avoid circular imports at module import time
    from .services.reconciler import reconcile_all_parties

    summary = reconcile_all_parties()
    if summary["failed"]:
        logger.warning("Reconciliation failed for %s", summary["failed"])
    # JSON-friendly result for the result backend
    return {
        "customer": summary["customer"],
        "vendor": summary["vendor"],
        "failed": [f"{kind}:{pk}" for kind, pk in summary["failed"]],
    }


@shared_task
def reconcile_party_balance(kind, party_id):
    """Reconcile one party, e.g. after a bulk import touched its history."""
    from .services.reconciler import reconcile_party

    result = reconcile_party(kind, party_id)
    return str(result.current_balance)
