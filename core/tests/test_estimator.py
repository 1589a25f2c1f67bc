from datetime import date

import pytest

from core.models import Doctor, QueueEntry, QueuePriority, QueueStatus
from core.services.estimator import estimate, recompute_wait_times, serving_order
from core.services.queue import create_queue_entry, update_queue_entry_status

QUEUE_DATE = date(2024, 1, 10)


def _entry(pk, number, priority=QueuePriority.REGULAR, status=QueueStatus.WAITING, doctor_id=None):
    # unsaved instances; the estimator is pure over its inputs
    return QueueEntry(pk=pk, queue_number=number, queue_date=QUEUE_DATE, priority=priority,
                      status=status, doctor_id=doctor_id)


def test_priority_then_arrival_order():
    a = _entry(1, 1)
    b = _entry(2, 2, QueuePriority.EMERGENCY)
    c = _entry(3, 3)
    assert [e.pk for e in serving_order([a, b, c])] == [b.pk, a.pk, c.pk]


def test_senior_and_pwd_share_a_tier():
    pwd = _entry(1, 1, QueuePriority.PWD)
    regular = _entry(2, 2)
    senior = _entry(3, 3, QueuePriority.SENIOR)
    emergency = _entry(4, 4, QueuePriority.EMERGENCY)
    assert [e.pk for e in serving_order([regular, senior, emergency, pwd])] == [4, 1, 3, 2]


@pytest.mark.parametrize('status', [QueueStatus.ATTENDED, QueueStatus.NO_SHOW, QueueStatus.ATTENDING])
def test_no_estimate_unless_waiting(status):
    entry = _entry(1, 1, status=status)
    assert estimate(entry, [entry], default_minutes=15) is None


def test_entry_missing_from_snapshot():
    entry = _entry(1, 1)
    assert estimate(entry, [_entry(2, 2)], default_minutes=15) is None


def test_first_in_line_waits_zero():
    entry = _entry(1, 1)
    assert estimate(entry, [entry], default_minutes=15) == 0


def test_sums_each_ahead_entrys_doctor_average():
    first = _entry(1, 1, doctor_id=10)
    second = _entry(2, 2, status=QueueStatus.ATTENDING, doctor_id=20)
    third = _entry(3, 3)
    done = _entry(4, 4, QueuePriority.EMERGENCY, status=QueueStatus.ATTENDED, doctor_id=10)
    mine = _entry(5, 5)
    snapshot = [first, second, third, done, mine]
    avg = {10: 10, 20: 30}
    # 10 + 30 + default 15; the attended emergency does not count
    assert estimate(mine, snapshot, avg_minutes=avg, default_minutes=15) == 55


def test_priority_entry_jumps_ahead_of_regulars():
    regulars = [_entry(i, i) for i in range(1, 4)]
    urgent = _entry(4, 4, QueuePriority.EMERGENCY)
    snapshot = regulars + [urgent]
    assert estimate(urgent, snapshot, default_minutes=15) == 0
    assert estimate(regulars[0], snapshot, default_minutes=15) == 15


def test_per_doctor_mode_counts_only_same_doctor():
    other = _entry(1, 1, doctor_id=20)
    same = _entry(2, 2, doctor_id=10)
    mine = _entry(3, 3, doctor_id=10)
    snapshot = [other, same, mine]
    avg = {10: 20, 20: 40}
    assert estimate(mine, snapshot, avg_minutes=avg, default_minutes=15, per_doctor=False) == 60
    assert estimate(mine, snapshot, avg_minutes=avg, default_minutes=15, per_doctor=True) == 20


@pytest.mark.django_db
def test_recompute_writes_estimates_and_clears_non_waiting(make_patient, department):
    slow = Doctor.objects.create(full_name='Dr. Slow', department=department, avg_consultation_minutes=30)
    entries = [
        create_queue_entry(patient_id=make_patient().pk, reason_for_visit='checkup',
                           doctor_id=slow.pk, queue_date=QUEUE_DATE)
        for _ in range(3)
    ]
    # create_queue_entry already recomputes after each insert
    values = list(
        QueueEntry.objects.filter(queue_date=QUEUE_DATE).order_by('queue_number')
        .values_list('estimated_wait_minutes', flat=True)
    )
    assert values == [0, 30, 60]

    update_queue_entry_status(entries[0].pk, status=QueueStatus.ATTENDING)
    entries[0].refresh_from_db()
    entries[2].refresh_from_db()
    assert entries[0].estimated_wait_minutes is None
    # the attending entry is still ahead of the waiting ones
    assert entries[2].estimated_wait_minutes == 60

    assert recompute_wait_times(QUEUE_DATE) == 0
