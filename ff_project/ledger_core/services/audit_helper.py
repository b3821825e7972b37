import json
import logging

from django.core.serializers.json import DjangoJSONEncoder

from ..models import AuditLog

logger = logging.getLogger(__name__)


def _json_safe(changes):
    # Decimals and datetimes become strings, the way the API renders them
    if changes is None:
        return None
    return json.loads(json.dumps(changes, cls=DjangoJSONEncoder))


def log_action(*, action: str, instance, changes: dict | None = None):
    """
    Append an AuditLog row for a ledger-affecting operation.
    Runs inside the caller's atomic block, so it disappears with a rollback.
    """
    entry = AuditLog.objects.create(
        action=action,
        object_type=type(instance).__name__,
        object_id=str(instance.pk),
        changes=_json_safe(changes),
    )
    logger.debug("Audit %s %s(%s)", action, entry.object_type, entry.object_id)
    return entry
