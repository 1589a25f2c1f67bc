"""
Reassigning queue entries between doctors and departments.

A transfer changes only the assignment of an entry; its number,
status, priority and reason for visit are left alone.  Every transfer
leaves an immutable :class:`QueueTransfer` row written in the same
transaction as the entry update.
"""
from __future__ import annotations

from typing import Optional

from django.db import transaction
from django.utils import timezone

from core.exceptions import InvalidTransition, NoOp, NotFound, ValidationError
from core.models import Department, Doctor, QueueEntry, QueueTransfer
from core.services.transitions import TERMINAL_STATUSES


def _target_doctor(doctor_id) -> Doctor:
    doctor = Doctor.objects.filter(pk=doctor_id).first()
    if doctor is None:
        raise NotFound(f'doctor {doctor_id} not found')
    if doctor.status != 'active':
        raise ValidationError(f'doctor {doctor_id} is not active')
    return doctor


def transfer_entry(queue_id, *, to_doctor_id=None, to_department_id=None,
                   reason: Optional[str] = None, transferred_by=None) -> tuple[QueueEntry, QueueTransfer]:
    """Reassign an entry; return the updated entry and the history record.

    Omitted targets keep their current value.  When only the doctor
    changes, the department follows the new doctor's department.
    """
    with transaction.atomic():
        entry = QueueEntry.objects.select_for_update().filter(pk=queue_id).first()
        if entry is None:
            raise NotFound(f'queue entry {queue_id} not found')
        if entry.status in TERMINAL_STATUSES:
            raise InvalidTransition(f'cannot transfer a queue entry that is {entry.status}')

        new_doctor_id = entry.doctor_id
        new_department_id = entry.department_id
        if to_doctor_id is not None and to_doctor_id != entry.doctor_id:
            doctor = _target_doctor(to_doctor_id)
            new_doctor_id = doctor.pk
            if to_department_id is None and doctor.department_id is not None:
                new_department_id = doctor.department_id
        if to_department_id is not None and to_department_id != entry.department_id:
            if not Department.objects.filter(pk=to_department_id).exists():
                raise NotFound(f'department {to_department_id} not found')
            new_department_id = to_department_id

        if new_doctor_id == entry.doctor_id and new_department_id == entry.department_id:
            raise NoOp('the entry is already assigned to that doctor and department')

        record = QueueTransfer.objects.create(
            queue=entry,
            from_doctor_id=entry.doctor_id,
            to_doctor_id=new_doctor_id,
            from_department_id=entry.department_id,
            to_department_id=new_department_id,
            reason=reason or None,
            transferred_by=transferred_by if getattr(transferred_by, 'pk', None) else None,
        )
        QueueEntry.objects.filter(pk=entry.pk).update(
            doctor_id=new_doctor_id,
            department_id=new_department_id,
            updated_at=timezone.now(),
        )
        entry.refresh_from_db()
    return entry, record


def list_transfers(queue_id) -> list[QueueTransfer]:
    """Transfer history of an entry, oldest first."""
    if not QueueEntry.objects.filter(pk=queue_id).exists():
        raise NotFound(f'queue entry {queue_id} not found')
    return list(
        QueueTransfer.objects.filter(queue_id=queue_id)
        .select_related('from_doctor', 'to_doctor', 'from_department', 'to_department', 'transferred_by')
        .order_by('created_at', 'id')
    )
