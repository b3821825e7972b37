from django.contrib import admin, messages
from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _

from ..services.reconciler import reconcile_party

# ---------- Admin actions ----------


@admin.action(description="Recalculate balances")
def recalculate_balances(modeladmin, request, queryset):
    """
    Admin action: re-run the voucher-date reconciliation for each selected
    customer/vendor. Each party is reconciled in its own transaction.
    """
    kind = modeladmin.party_kind
    success = 0
    for party in queryset:
        try:
            result = reconcile_party(kind, party.pk)
            success += 1
        except Exception as exc:
            # one broken history must not stop the batch
            modeladmin.message_user(
                request,
                _("Could not reconcile %(party)s: %(err)s") % {"party": party, "err": exc},
                level=messages.ERROR,
            )
            continue
        if result.current_balance != party.current_balance:
            modeladmin.message_user(
                request,
                _("%(party)s: %(old)s → %(new)s") % {
                    "party": party, "old": party.current_balance, "new": result.current_balance,
                },
                level=messages.INFO,
            )

    modeladmin.message_user(
        request,
        _("Recalculated %(success)d of %(total)d balances.") % {
            "success": success, "total": len(queryset),
        },
        level=messages.SUCCESS if success == len(queryset) else messages.WARNING,
    )


@admin.action(description="Post selected journal entries")
def post_journal_entries(modeladmin, request, queryset):
    """Post each selected draft; JournalEntry.post() locks and validates the row."""
    candidates = queryset.filter(is_posted=False)
    total = candidates.count()
    success = 0
    for je in candidates:
        try:
            je.post()
            success += 1
        except ValidationError as exc:
            modeladmin.message_user(
                request,
                _("Could not post %(num)s: %(err)s") % {"num": je.entry_number, "err": exc},
                level=messages.ERROR,
            )

    modeladmin.message_user(
        request,
        _("Posted %(success)d of %(total)d journal entries.") % {"success": success, "total": total},
        level=messages.SUCCESS if success == total else messages.WARNING,
    )
