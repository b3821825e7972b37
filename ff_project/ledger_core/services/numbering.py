import logging

from django.db import IntegrityError, transaction

logger = logging.getLogger(__name__)

NUMBERING_ATTEMPTS = 5


def save_numbered(instance, assign, attempts=NUMBERING_ATTEMPTS):
    """
    Save a new row whose unique number continues from the newest row.

    assign(instance) writes the number field(s). Two writers can read the
    same "newest" row; the unique constraint rejects the second insert,
    which is then retried with a freshly assigned number.
    """
    for attempt in range(1, attempts + 1):
        assign(instance)
        try:
            with transaction.atomic():
                instance.save()
            return instance
        except IntegrityError:
            if attempt == attempts:
                raise
            logger.warning(
                "%s number collision on attempt %d, renumbering", type(instance).__name__, attempt
            )
