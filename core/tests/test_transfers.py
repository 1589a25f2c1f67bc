from datetime import date

import pytest

from core.exceptions import InvalidTransition, NoOp, NotFound, ValidationError
from core.models import Doctor, ImmutableRecord, QueuePriority, QueueStatus, QueueTransfer
from core.services.queue import (
    create_queue_entry,
    get_queue_entry,
    list_queue_transfers,
    transfer_queue_entry,
    update_queue_entry_status,
)

pytestmark = pytest.mark.django_db

QUEUE_DATE = date(2024, 1, 10)


@pytest.fixture
def doctors(department, other_department):
    return {
        7: Doctor.objects.create(pk=7, full_name='Dr. Seven', department=department),
        9: Doctor.objects.create(pk=9, full_name='Dr. Nine', department=other_department),
        11: Doctor.objects.create(pk=11, full_name='Dr. Eleven', department=department),
    }


@pytest.fixture
def entry(patient, doctors, department):
    return create_queue_entry(patient_id=patient.pk, reason_for_visit='Back pain consultation',
                              doctor_id=7, department_id=department.pk,
                              priority=QueuePriority.SENIOR, queue_date=QUEUE_DATE)


def test_transfer_history_in_creation_order(entry, staff_user):
    transfer_queue_entry(entry.pk, to_doctor_id=9, reason='overloaded', user=staff_user)
    transfer_queue_entry(entry.pk, to_doctor_id=11, user=staff_user)

    history = list_queue_transfers(entry.pk)
    assert [(t.from_doctor_id, t.to_doctor_id) for t in history] == [(7, 9), (9, 11)]
    assert history[0].reason == 'overloaded'
    assert history[1].reason is None
    assert history[0].transferred_by_id == staff_user.pk


def test_transfer_changes_assignment_only(entry, other_department):
    record = transfer_queue_entry(entry.pk, to_doctor_id=9)
    moved = get_queue_entry(entry.pk)
    assert moved.doctor_id == 9
    # department follows the new doctor
    assert moved.department_id == other_department.pk
    assert record.from_department_id == entry.department_id
    assert record.to_department_id == other_department.pk
    assert (moved.queue_number, moved.status, moved.priority, moved.reason_for_visit) == (
        entry.queue_number, entry.status, entry.priority, entry.reason_for_visit)


def test_transfer_there_and_back_restores_assignment(entry):
    transfer_queue_entry(entry.pk, to_doctor_id=9)
    transfer_queue_entry(entry.pk, to_doctor_id=7)
    back = get_queue_entry(entry.pk)
    assert (back.doctor_id, back.department_id) == (entry.doctor_id, entry.department_id)
    assert len(list_queue_transfers(entry.pk)) == 2


def test_department_only_transfer_keeps_doctor(entry, other_department):
    transfer_queue_entry(entry.pk, to_department_id=other_department.pk)
    moved = get_queue_entry(entry.pk)
    assert moved.doctor_id == 7
    assert moved.department_id == other_department.pk


def test_same_assignment_is_a_no_op(entry):
    with pytest.raises(NoOp):
        transfer_queue_entry(entry.pk, to_doctor_id=7)
    with pytest.raises(NoOp):
        transfer_queue_entry(entry.pk)
    assert not QueueTransfer.objects.filter(queue_id=entry.pk).exists()


def test_unknown_targets(entry):
    with pytest.raises(NotFound):
        transfer_queue_entry(entry.pk, to_doctor_id=404)
    with pytest.raises(NotFound):
        transfer_queue_entry(entry.pk, to_department_id=404)
    with pytest.raises(NotFound):
        transfer_queue_entry(999999, to_doctor_id=9)
    with pytest.raises(NotFound):
        list_queue_transfers(999999)


def test_inactive_doctor_is_rejected(entry, doctors):
    Doctor.objects.filter(pk=9).update(status='inactive')
    with pytest.raises(ValidationError):
        transfer_queue_entry(entry.pk, to_doctor_id=9)
    assert get_queue_entry(entry.pk).doctor_id == 7


def test_finished_entries_cannot_be_transferred(entry):
    update_queue_entry_status(entry.pk, status=QueueStatus.NO_SHOW)
    with pytest.raises(InvalidTransition):
        transfer_queue_entry(entry.pk, to_doctor_id=9)


def test_transfer_records_are_immutable(entry):
    record = transfer_queue_entry(entry.pk, to_doctor_id=9, reason='overloaded')
    record.reason = 'rewritten'
    with pytest.raises(ImmutableRecord):
        record.save()
    with pytest.raises(ImmutableRecord):
        record.delete()
    assert QueueTransfer.objects.get(pk=record.pk).reason == 'overloaded'
