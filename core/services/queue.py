"""
Queue operations used by the REST views and management commands.

Each mutating operation commits its change first, then describes it to
the audit sink, refreshes the advisory wait times for the affected date
and, once the transaction commits, notifies the display boards.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.db import DatabaseError, transaction

from core.exceptions import NotFound, ValidationError
from core.models import (
    Department,
    Doctor,
    Patient,
    QueueEntry,
    QueuePriority,
    QueueStatus,
    QueueTransfer,
)
from core.realtime.consumers import DISPLAY_GROUP
from core.services.audit import AuditSink, emit_safely, get_audit_sink, snapshot
from core.services.estimator import recompute_wait_times, serving_order
from core.services.numbering import create_numbered_entry, facility_today
from core.services.transitions import apply_transition
from core.services.transfers import list_transfers, transfer_entry

logger = logging.getLogger(__name__)

ENTRY_RELATED = ('patient', 'department', 'doctor')


@dataclass
class QueueSnapshot:
    date: date
    entries: list[QueueEntry]
    counts: dict[str, int] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Side effects shared by every mutation
# ---------------------------------------------------------------------------

def broadcast_queue_update(queue_date: date, queue_id, event: str) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    async_to_sync(channel_layer.group_send)(DISPLAY_GROUP, {
        "type": "queue.updated",
        "date": queue_date.isoformat(),
        "queueId": queue_id,
        "event": event,
    })


def _after_change(queue_date: date, queue_id, event: str) -> None:
    try:
        with transaction.atomic():
            recompute_wait_times(queue_date)
    except DatabaseError:
        logger.exception('wait time recompute failed for %s', queue_date)
    transaction.on_commit(lambda: broadcast_queue_update(queue_date, queue_id, event), robust=True)


def _patient_label(entry: QueueEntry) -> str:
    patient = getattr(entry, 'patient', None)
    return getattr(patient, 'patient_uid', None) or f'patient {entry.patient_id}'


def get_queue_entry(entry_id) -> QueueEntry:
    entry = QueueEntry.objects.select_related(*ENTRY_RELATED).filter(pk=entry_id).first()
    if entry is None:
        raise NotFound(f'queue entry {entry_id} not found')
    return entry


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def create_queue_entry(*, patient_id, reason_for_visit: str, department_id=None, doctor_id=None,
                       priority: Optional[str] = None, queue_date: Optional[date] = None,
                       user=None, audit: Optional[AuditSink] = None) -> QueueEntry:
    if not patient_id:
        raise ValidationError('patientId is required')
    reason_for_visit = (reason_for_visit or '').strip()
    if not reason_for_visit:
        raise ValidationError('reasonForVisit is required')
    priority = priority or QueuePriority.REGULAR
    if priority not in QueuePriority.values:
        raise ValidationError(f'unknown priority {priority}')

    patient = Patient.objects.filter(pk=patient_id).first()
    if patient is None:
        raise NotFound(f'patient {patient_id} not found')
    if department_id is not None and not Department.objects.filter(pk=department_id).exists():
        raise NotFound(f'department {department_id} not found')
    doctor = None
    if doctor_id is not None:
        doctor = Doctor.objects.filter(pk=doctor_id).first()
        if doctor is None:
            raise NotFound(f'doctor {doctor_id} not found')

    queue_date = queue_date or facility_today()
    entry = create_numbered_entry(
        queue_date,
        patient=patient,
        reason_for_visit=reason_for_visit,
        department_id=department_id,
        doctor=doctor,
        priority=priority,
        status=QueueStatus.WAITING,
    )
    logger.info('queue entry #%s issued for %s on %s', entry.queue_number, patient.patient_uid, queue_date)

    doctor_name = doctor.full_name if doctor else 'unassigned'
    emit_safely(audit or get_audit_sink(), 'created', 'Queue', entry.pk,
                f'Added patient to queue: {patient.patient_uid}, Doctor: {doctor_name}',
                {'queue': snapshot(entry)}, user=user)
    _after_change(queue_date, entry.pk, 'created')
    return get_queue_entry(entry.pk)


def update_queue_entry_status(entry_id, *, status: str, medical_record_id=None,
                              user=None, audit: Optional[AuditSink] = None) -> QueueEntry:
    if status not in QueueStatus.values:
        raise ValidationError(f'unknown status {status}')
    before = snapshot(get_queue_entry(entry_id))
    entry, previous = apply_transition(entry_id, status, medical_record_id=medical_record_id)
    after = snapshot(entry)
    changed = {k: v for k, v in after.items() if before.get(k) != v and k != 'updated_at'}

    entry = get_queue_entry(entry.pk)
    emit_safely(audit or get_audit_sink(), 'updated', 'Queue', entry.pk,
                f'Queue status changed from {previous} to {status} for {_patient_label(entry)}',
                {'before': {k: before.get(k) for k in changed}, 'after': changed}, user=user)
    _after_change(entry.queue_date, entry.pk, 'status')
    return get_queue_entry(entry.pk)


def transfer_queue_entry(entry_id, *, to_doctor_id=None, to_department_id=None,
                         reason: Optional[str] = None, user=None,
                         audit: Optional[AuditSink] = None) -> QueueTransfer:
    entry, record = transfer_entry(
        entry_id,
        to_doctor_id=to_doctor_id,
        to_department_id=to_department_id,
        reason=reason,
        transferred_by=user,
    )
    record = (
        QueueTransfer.objects.select_related('from_doctor', 'to_doctor', 'from_department', 'to_department')
        .get(pk=record.pk)
    )
    entry = get_queue_entry(entry.pk)

    def _name(obj, attr, missing):
        return getattr(obj, attr) if obj is not None else missing

    description = (
        f'Transferred queue for patient {_patient_label(entry)}: '
        f'From {_name(record.from_doctor, "full_name", "No doctor")} '
        f'({_name(record.from_department, "name", "No department")}) '
        f'to {_name(record.to_doctor, "full_name", "No doctor")} '
        f'({_name(record.to_department, "name", "No department")})'
    )
    if record.reason:
        description += f' - Reason: {record.reason}'
    emit_safely(audit or get_audit_sink(), 'transfer', 'QueueTransfer', record.pk, description,
                {'transfer': snapshot(record)}, user=user)
    _after_change(entry.queue_date, entry.pk, 'transfer')
    return record


def list_queue_transfers(entry_id) -> list[QueueTransfer]:
    return list_transfers(entry_id)


def delete_queue_entry(entry_id, *, user=None, audit: Optional[AuditSink] = None) -> dict:
    """Administrative removal of an entry in any state.

    Unlike ``no_show`` this erases the entry and its transfer history;
    the full prior attributes go to the audit sink.  Returns them.
    """
    with transaction.atomic():
        entry = QueueEntry.objects.select_for_update().filter(pk=entry_id).first()
        if entry is None:
            raise NotFound(f'queue entry {entry_id} not found')
        prior = {
            'queue': snapshot(entry),
            'transfers': [snapshot(t) for t in entry.transfers.order_by('created_at', 'id')],
        }
        label = _patient_label(entry)
        queue_date = entry.queue_date
        entry.delete()
    logger.warning('queue entry %s (#%s on %s) deleted by %s', entry_id, prior['queue']['queue_number'],
                   queue_date, getattr(user, 'username', None) or '-')
    emit_safely(audit or get_audit_sink(), 'deleted', 'Queue', entry_id,
                f'Removed queue entry for {label}', prior, user=user)
    _after_change(queue_date, entry_id, 'deleted')
    return prior


def get_queue_snapshot(queue_date: Optional[date] = None, *, status: Optional[str] = None,
                       doctor_id=None, department_id=None) -> QueueSnapshot:
    """Entries of a date in serving order plus counts by status.

    Filters narrow the entry list only; counts always cover the whole date.
    """
    queue_date = queue_date or facility_today()
    qs = QueueEntry.objects.filter(queue_date=queue_date).select_related(*ENTRY_RELATED)
    entries = list(qs)
    counts = {s: 0 for s in QueueStatus.values}
    for e in entries:
        counts[e.status] = counts.get(e.status, 0) + 1
    counts['total'] = len(entries)

    if status:
        entries = [e for e in entries if e.status == status]
    if doctor_id is not None:
        entries = [e for e in entries if e.doctor_id == doctor_id]
    if department_id is not None:
        entries = [e for e in entries if e.department_id == department_id]
    return QueueSnapshot(date=queue_date, entries=serving_order(entries), counts=counts)


def get_display_board(queue_date: Optional[date] = None, limit: Optional[int] = None) -> dict:
    """Now-serving entries and the next ``limit`` waiting ones for public screens."""
    snap = get_queue_snapshot(queue_date)
    limit = settings.QUEUE_DISPLAY_NEXT_COUNT if limit is None else limit
    return {
        'date': snap.date,
        'now_serving': [e for e in snap.entries if e.status == QueueStatus.ATTENDING],
        'next': [e for e in snap.entries if e.status == QueueStatus.WAITING][:limit],
    }


def get_queue_statistics(queue_date: Optional[date] = None) -> dict:
    snap = get_queue_snapshot(queue_date)
    attending = [e for e in snap.entries if e.status == QueueStatus.ATTENDING]
    waiting_estimates = [
        e.estimated_wait_minutes for e in snap.entries
        if e.status == QueueStatus.WAITING and e.estimated_wait_minutes is not None
    ]
    return {
        'date': snap.date,
        'total': snap.counts['total'],
        'waiting': snap.counts[QueueStatus.WAITING],
        'attending': snap.counts[QueueStatus.ATTENDING],
        'attended': snap.counts[QueueStatus.ATTENDED],
        'no_show': snap.counts[QueueStatus.NO_SHOW],
        'now_serving': attending[0] if attending else None,
        'longest_wait_minutes': max(waiting_estimates) if waiting_estimates else None,
    }


# ---------------------------------------------------------------------------
# Response formatting
# ---------------------------------------------------------------------------

def _ts(value) -> Optional[str]:
    return value.isoformat() if value else None


def format_entry(entry: QueueEntry) -> dict:
    return {
        'id': entry.pk,
        'queueNumber': entry.queue_number,
        'queueDate': entry.queue_date.isoformat(),
        'patientId': entry.patient_id,
        'patientUid': entry.patient.patient_uid,
        'patientName': entry.patient.full_name,
        'departmentId': entry.department_id,
        'departmentName': entry.department.name if entry.department_id else None,
        'doctorId': entry.doctor_id,
        'doctorName': entry.doctor.full_name if entry.doctor_id else None,
        'medicalRecordId': entry.medical_record_id,
        'reasonForVisit': entry.reason_for_visit,
        'priority': entry.priority,
        'status': entry.status,
        'calledAt': _ts(entry.called_at),
        'servedAt': _ts(entry.served_at),
        'estimatedWaitMinutes': entry.estimated_wait_minutes,
        'createdAt': _ts(entry.created_at),
    }


def format_display_entry(entry: QueueEntry) -> dict:
    """Public screens show the ticket, not the patient's identity."""
    return {
        'queueNumber': entry.queue_number,
        'priority': entry.priority,
        'status': entry.status,
        'departmentName': entry.department.name if entry.department_id else None,
        'doctorName': entry.doctor.full_name if entry.doctor_id else None,
        'estimatedWaitMinutes': entry.estimated_wait_minutes,
    }


def format_transfer(t: QueueTransfer) -> dict:
    return {
        'id': t.pk,
        'queueId': t.queue_id,
        'fromDoctorId': t.from_doctor_id,
        'fromDoctorName': t.from_doctor.full_name if t.from_doctor_id else None,
        'toDoctorId': t.to_doctor_id,
        'toDoctorName': t.to_doctor.full_name if t.to_doctor_id else None,
        'fromDepartmentId': t.from_department_id,
        'fromDepartmentName': t.from_department.name if t.from_department_id else None,
        'toDepartmentId': t.to_department_id,
        'toDepartmentName': t.to_department.name if t.to_department_id else None,
        'reason': t.reason,
        'transferredBy': t.transferred_by_id,
        'createdAt': _ts(t.created_at),
    }
