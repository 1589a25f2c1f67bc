from datetime import date
from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from core.models import Department, Doctor, QueueEntry, QueueStatus, User
from core.services.numbering import facility_today

pytestmark = pytest.mark.django_db


def test_recompute_wait_times_command(patient, doctor):
    QueueEntry.objects.create(queue_number=1, queue_date=date(2024, 1, 10), patient=patient,
                              doctor=doctor, reason_for_visit='checkup')
    QueueEntry.objects.create(queue_number=2, queue_date=date(2024, 1, 10), patient=patient,
                              doctor=doctor, reason_for_visit='checkup')
    out = StringIO()
    call_command('recompute_wait_times', '--date', '2024-01-10', stdout=out)
    assert '2 entries changed' in out.getvalue()
    assert list(QueueEntry.objects.order_by('queue_number').values_list('estimated_wait_minutes', flat=True)) == [0, 15]


def test_recompute_wait_times_rejects_bad_date():
    with pytest.raises(CommandError):
        call_command('recompute_wait_times', '--date', '10/01/2024', stdout=StringIO())


def test_seed_demo_data_is_repeatable():
    call_command('seed_demo_data', stdout=StringIO())
    call_command('seed_demo_data', stdout=StringIO())

    assert Department.objects.count() == 10
    assert Doctor.objects.count() == 5
    assert User.objects.filter(username='admin', role='admin').exists()

    today = QueueEntry.objects.filter(queue_date=facility_today())
    assert sorted(today.values_list('queue_number', flat=True)) == [1, 2, 3, 4, 5]
    assert today.filter(status=QueueStatus.ATTENDED).count() == 1
    assert today.filter(status=QueueStatus.ATTENDING).count() == 1
