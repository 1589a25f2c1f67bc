"""
Daily queue ticket numbering.

Numbers restart at 1 every calendar day in the facility's time zone.
Allocation relies on the ``(queue_number, queue_date)`` unique
constraint: a request that loses a race hits ``IntegrityError`` inside
its own savepoint and retries with a fresh maximum.
"""
import logging
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Max
from django.utils import timezone
from prometheus_client import Counter

from core.exceptions import DuplicateNumber
from core.models import QueueEntry

logger = logging.getLogger(__name__)

NUMBER_CONFLICTS = Counter(
    'frontdesk_queue_number_conflicts',
    'Queue number allocations that collided with a concurrent request',
    ['outcome'],
)


def facility_today(now: Optional[datetime] = None) -> date:
    """Return the current calendar date at the facility."""
    tz = ZoneInfo(settings.FACILITY_TIME_ZONE)
    return timezone.localtime(now or timezone.now(), tz).date()


def next_number(queue_date: date) -> int:
    """Highest number already issued for ``queue_date`` plus one, or 1."""
    current = QueueEntry.objects.filter(queue_date=queue_date).aggregate(m=Max('queue_number'))['m']
    return (current or 0) + 1


def create_numbered_entry(queue_date: date, **fields) -> QueueEntry:
    """Insert a queue entry stamped with the next number for its date.

    Retries when a concurrent request took the same number first; raises
    :class:`DuplicateNumber` after ``QUEUE_NUMBER_MAX_RETRIES`` attempts.
    Integrity errors unrelated to the number propagate unchanged.
    """
    attempts = max(1, settings.QUEUE_NUMBER_MAX_RETRIES)
    for attempt in range(1, attempts + 1):
        number = None
        try:
            with transaction.atomic():
                number = next_number(queue_date)
                return QueueEntry.objects.create(queue_number=number, queue_date=queue_date, **fields)
        except IntegrityError:
            taken = number is not None and QueueEntry.objects.filter(
                queue_date=queue_date, queue_number=number
            ).exists()
            if not taken:
                raise
            NUMBER_CONFLICTS.labels(outcome='retry').inc()
            logger.warning('queue number %s for %s was taken concurrently (attempt %s/%s)',
                           number, queue_date, attempt, attempts)
    NUMBER_CONFLICTS.labels(outcome='exhausted').inc()
    raise DuplicateNumber(f'could not allocate a queue number for {queue_date} after {attempts} attempts')
