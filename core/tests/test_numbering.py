from datetime import date, datetime, timedelta, timezone as dt_timezone

import pytest

from core.exceptions import DuplicateNumber
from core.models import QueueEntry
from core.services import numbering
from core.services.numbering import create_numbered_entry, facility_today, next_number
from core.services.queue import create_queue_entry

pytestmark = pytest.mark.django_db

QUEUE_DATE = date(2024, 1, 10)


def _issue(patient, queue_date=QUEUE_DATE):
    return create_queue_entry(patient_id=patient.pk, reason_for_visit='checkup', queue_date=queue_date)


def test_numbers_start_at_one_and_are_contiguous(make_patient):
    numbers = [_issue(make_patient()).queue_number for _ in range(3)]
    assert numbers == [1, 2, 3]


def test_numbers_restart_each_day(make_patient):
    _issue(make_patient())
    _issue(make_patient())
    next_day = _issue(make_patient(), QUEUE_DATE + timedelta(days=1))
    assert next_day.queue_number == 1
    assert next_number(QUEUE_DATE) == 3


def test_next_number_follows_highest_remaining(make_patient):
    _issue(make_patient())
    second = _issue(make_patient())
    QueueEntry.objects.filter(pk=second.pk).delete()
    assert _issue(make_patient()).queue_number == 2


def test_retries_when_number_taken_concurrently(monkeypatch, patient):
    _issue(patient)
    real_next = numbering.next_number
    calls = []

    def stale_then_real(queue_date):
        calls.append(queue_date)
        # first read misses the row another request just committed
        return 1 if len(calls) == 1 else real_next(queue_date)

    monkeypatch.setattr(numbering, 'next_number', stale_then_real)
    entry = create_numbered_entry(QUEUE_DATE, patient=patient, reason_for_visit='follow-up')
    assert entry.queue_number == 2
    assert len(calls) == 2


def test_gives_up_after_max_retries(monkeypatch, settings, patient):
    settings.QUEUE_NUMBER_MAX_RETRIES = 3
    _issue(patient)
    calls = []

    def always_taken(queue_date):
        calls.append(queue_date)
        return 1

    monkeypatch.setattr(numbering, 'next_number', always_taken)
    with pytest.raises(DuplicateNumber):
        create_numbered_entry(QUEUE_DATE, patient=patient, reason_for_visit='follow-up')
    assert len(calls) == 3
    assert QueueEntry.objects.filter(queue_date=QUEUE_DATE).count() == 1


def test_facility_today_uses_facility_time_zone(settings):
    evening_utc = datetime(2024, 1, 9, 17, 30, tzinfo=dt_timezone.utc)

    settings.FACILITY_TIME_ZONE = 'Asia/Manila'
    assert facility_today(evening_utc) == date(2024, 1, 10)

    settings.FACILITY_TIME_ZONE = 'UTC'
    assert facility_today(evening_utc) == date(2024, 1, 9)
