"""
Queue entry status state machine.

    waiting ──> attending ──> attended
       │            │
       └────────────┴──────> no_show

``attended`` and ``no_show`` are terminal.  A transition is applied
under a row lock and written with a compare-and-set on the observed
status, so of two concurrent requests starting from the same state only
one can succeed; the other gets :class:`InvalidTransition`.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from django.db import transaction
from django.utils import timezone

from core.exceptions import InvalidTransition, NotFound, ValidationError
from core.models import MedicalRecord, QueueEntry, QueueStatus

TRANSITIONS: dict[str, frozenset[str]] = {
    QueueStatus.WAITING: frozenset({QueueStatus.ATTENDING, QueueStatus.NO_SHOW}),
    QueueStatus.ATTENDING: frozenset({QueueStatus.ATTENDED, QueueStatus.NO_SHOW}),
    QueueStatus.ATTENDED: frozenset(),
    QueueStatus.NO_SHOW: frozenset(),
}

TERMINAL_STATUSES = frozenset({QueueStatus.ATTENDED, QueueStatus.NO_SHOW})


def can_transition(current: str, new: str) -> bool:
    """Return True if an entry may move from ``current`` to ``new``."""
    return new in TRANSITIONS.get(current, frozenset())


def _load_for_update(entry_id) -> Optional[QueueEntry]:
    return QueueEntry.objects.select_for_update().filter(pk=entry_id).first()


def compare_and_set(entry_id, expected_status: str, **changes) -> bool:
    """Write ``changes`` only if the row still has ``expected_status``."""
    return QueueEntry.objects.filter(pk=entry_id, status=expected_status).update(**changes) == 1


def _linked_record(entry: QueueEntry, medical_record_id) -> MedicalRecord:
    record = MedicalRecord.objects.filter(pk=medical_record_id).first()
    if record is None:
        raise NotFound(f'medical record {medical_record_id} not found')
    if record.patient_id != entry.patient_id:
        raise ValidationError('medical record belongs to a different patient')
    return record


def apply_transition(entry_id, new_status: str, *, medical_record_id=None,
                     now: Optional[datetime] = None) -> tuple[QueueEntry, str]:
    """Move an entry to ``new_status``; return the updated entry and its previous status."""
    with transaction.atomic():
        entry = _load_for_update(entry_id)
        if entry is None:
            raise NotFound(f'queue entry {entry_id} not found')
        previous = entry.status
        if not can_transition(previous, new_status):
            raise InvalidTransition(f'cannot change status from {previous} to {new_status}')
        if medical_record_id is not None and new_status != QueueStatus.ATTENDED:
            raise ValidationError('a medical record can only be linked when the visit is attended')

        now = now or timezone.now()
        changes = {'status': new_status, 'updated_at': now}
        if new_status == QueueStatus.ATTENDING:
            changes['called_at'] = now
        elif new_status == QueueStatus.ATTENDED:
            changes['served_at'] = now
            if medical_record_id is not None:
                changes['medical_record'] = _linked_record(entry, medical_record_id)

        if not compare_and_set(entry.pk, previous, **changes):
            raise InvalidTransition(
                f'queue entry {entry_id} was updated concurrently and is no longer {previous}'
            )
        entry.refresh_from_db()
    return entry, previous
