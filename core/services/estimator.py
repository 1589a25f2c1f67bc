"""
Serving order and advisory wait-time estimates.

Priority patients are served out of arrival order: emergencies first,
then seniors and PWDs sharing one tier, then everyone else; ties break
on the ticket number.  Estimates are recomputed after every queue
change but are never used to decide ordering.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Mapping, Optional

from django.conf import settings

from core.models import QueueEntry, QueuePriority, QueueStatus

logger = logging.getLogger(__name__)

PRIORITY_RANK = {
    QueuePriority.EMERGENCY: 0,
    QueuePriority.SENIOR: 1,
    QueuePriority.PWD: 1,
    QueuePriority.REGULAR: 2,
}

AHEAD_STATUSES = frozenset({QueueStatus.WAITING, QueueStatus.ATTENDING})


def serving_key(entry: QueueEntry) -> tuple[int, int, int]:
    return (
        PRIORITY_RANK.get(entry.priority, PRIORITY_RANK[QueuePriority.REGULAR]),
        entry.queue_number,
        entry.pk or 0,
    )


def serving_order(entries: Iterable[QueueEntry]) -> list[QueueEntry]:
    return sorted(entries, key=serving_key)


def _consultation_minutes(entry: QueueEntry, avg_minutes: Optional[Mapping[int, int]], default: int) -> int:
    if entry.doctor_id is None:
        return default
    if avg_minutes is not None:
        return avg_minutes.get(entry.doctor_id) or default
    return entry.doctor.avg_consultation_minutes or default


def estimate(entry: QueueEntry, snapshot: Iterable[QueueEntry], *,
             avg_minutes: Optional[Mapping[int, int]] = None,
             default_minutes: Optional[int] = None,
             per_doctor: Optional[bool] = None) -> Optional[int]:
    """Approximate minutes until ``entry`` is called.

    Counts the waiting/attending entries ahead of it in serving order on
    the same date and adds up their expected consultation times (each
    ahead entry's doctor average, else the facility default).
    Returns ``None`` when the entry is not waiting or not in the snapshot.

    ``avg_minutes`` maps doctor id to average minutes; without it the
    entries' ``doctor`` relation is read.  With ``per_doctor`` only
    entries assigned to the same doctor are counted.
    """
    if entry.status != QueueStatus.WAITING:
        return None
    if default_minutes is None:
        default_minutes = settings.QUEUE_DEFAULT_CONSULTATION_MINUTES
    if per_doctor is None:
        per_doctor = settings.QUEUE_ESTIMATE_PER_DOCTOR

    ordered = serving_order(e for e in snapshot if e.queue_date == entry.queue_date)
    position = next((i for i, e in enumerate(ordered) if e.pk == entry.pk), None)
    if position is None:
        return None

    ahead = [e for e in ordered[:position] if e.status in AHEAD_STATUSES]
    if per_doctor and entry.doctor_id is not None:
        ahead = [e for e in ahead if e.doctor_id == entry.doctor_id]
    return sum(_consultation_minutes(e, avg_minutes, default_minutes) for e in ahead)


def recompute_wait_times(queue_date: date) -> int:
    """Refresh ``estimated_wait_minutes`` for every entry of the date.

    Waiting entries get a fresh estimate, all others are cleared.
    Returns the number of rows whose value changed.
    """
    entries = list(QueueEntry.objects.filter(queue_date=queue_date).select_related('doctor'))
    avg_minutes = {
        e.doctor_id: e.doctor.avg_consultation_minutes for e in entries if e.doctor_id is not None
    }
    changed = []
    for entry in entries:
        value = estimate(entry, entries, avg_minutes=avg_minutes)
        if entry.estimated_wait_minutes != value:
            entry.estimated_wait_minutes = value
            changed.append(entry)
    if changed:
        QueueEntry.objects.bulk_update(changed, ['estimated_wait_minutes'])
    logger.debug('recomputed wait times for %s: %s of %s changed', queue_date, len(changed), len(entries))
    return len(changed)
