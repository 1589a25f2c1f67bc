from datetime import date

import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

from core.realtime.consumers import DISPLAY_GROUP
from core.services.queue import create_queue_entry


@pytest.fixture
def display_channel():
    layer = get_channel_layer()
    channel = async_to_sync(layer.new_channel)()
    async_to_sync(layer.group_add)(DISPLAY_GROUP, channel)
    yield layer, channel
    async_to_sync(layer.group_discard)(DISPLAY_GROUP, channel)


@pytest.mark.django_db
def test_display_boards_notified_after_commit(display_channel, patient, django_capture_on_commit_callbacks):
    layer, channel = display_channel
    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        entry = create_queue_entry(patient_id=patient.pk, reason_for_visit='checkup',
                                   queue_date=date(2024, 1, 10))
    assert len(callbacks) == 1

    message = async_to_sync(layer.receive)(channel)
    assert message == {
        'type': 'queue.updated',
        'date': '2024-01-10',
        'queueId': entry.pk,
        'event': 'created',
    }


@pytest.mark.django_db
def test_nothing_announced_before_commit(display_channel, patient, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=False) as callbacks:
        create_queue_entry(patient_id=patient.pk, reason_for_visit='checkup', queue_date=date(2024, 1, 10))
    # scheduled but not yet run
    assert len(callbacks) == 1
