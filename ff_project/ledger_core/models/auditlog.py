from django.db import models


# ---------- Audit / Event log ----------
class AuditLog(
    models.Model
):  # Traceability for every ledger-affecting operation
    # Type of event being logged
    action = models.CharField(
        max_length=50
    )  # create, update, reconcile, apply_balance, ...
    # What kind of object was affected
    object_type = models.CharField(
        max_length=100
    )  # (e.g., "Shipment", "CustomerTransaction", "Vendor")
    object_id = models.CharField(max_length=100)
    # before/after details of what changed, in JSON format
    changes = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["object_type", "object_id"]),
            models.Index(fields=["created_at"]),
        ]

    def __str__(self):
        return f"[{self.created_at:%Y-%m-%d %H:%M}] {self.action} {self.object_type}({self.object_id})"
