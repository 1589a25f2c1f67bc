import pytest
from django.urls import reverse
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

from core.models import QueueEntry, User

pytestmark = pytest.mark.django_db


def test_token_authentication_reaches_queue(staff_user):
    token = Token.objects.create(user=staff_user)
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f'Token {token.key}')
    r = client.get(reverse('queue_collection'), {'date': '2024-01-10'})
    assert r.status_code == 200
    assert r.data['ok'] is True


def test_bad_token_is_rejected():
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION='Token not-a-real-token')
    r = client.get(reverse('queue_collection'))
    assert r.status_code == 401
    assert r.data['error']['code'] == 'authentication_failed'


def test_account_without_role_is_forbidden():
    u = User.objects.create_user(username='norole', password='P@ssw0rd1', role='')
    client = APIClient()
    client.force_authenticate(user=u)
    r = client.get(reverse('queue_statistics'))
    assert r.status_code == 403
    assert r.data['error']['code'] == 'permission_denied'


def test_doctor_role_can_call_patients(patient):
    doc = User.objects.create_user(username='drsmith', password='P@ssw0rd1', role='doctor')
    client = APIClient()
    client.force_authenticate(user=doc)
    r = client.post(reverse('queue_collection'),
                    {'patientId': patient.pk, 'reasonForVisit': 'checkup', 'queueDate': '2024-01-10'},
                    format='json')
    assert r.status_code == 201
    r = client.patch(reverse('queue_entry', args=[r.data['data']['id']]), {'status': 'attending'}, format='json')
    assert r.status_code == 200


def test_superuser_counts_as_admin_for_delete(patient, staff_client):
    root = User.objects.create_superuser(username='root', password='P@ssw0rd1', email='root@example.com')
    r = staff_client.post(reverse('queue_collection'),
                          {'patientId': patient.pk, 'reasonForVisit': 'checkup', 'queueDate': '2024-01-10'},
                          format='json')
    entry_id = r.data['data']['id']
    client = APIClient()
    client.force_authenticate(user=root)
    r = client.delete(reverse('queue_entry', args=[entry_id]))
    assert r.status_code == 200
    assert not QueueEntry.objects.filter(pk=entry_id).exists()


def test_display_board_hides_patient_identity(patient, staff_client):
    staff_client.post(reverse('queue_collection'),
                      {'patientId': patient.pk, 'reasonForVisit': 'checkup', 'queueDate': '2024-01-10'},
                      format='json')
    r = APIClient().get(reverse('queue_display'), {'date': '2024-01-10'})
    assert r.status_code == 200
    body = str(r.data)
    assert patient.full_name not in body
    assert patient.patient_uid not in body


def test_free_text_is_sanitized(patient, staff_client):
    r = staff_client.post(reverse('queue_collection'), {
        'patientId': patient.pk,
        'reasonForVisit': '<script>alert(1)</script>Chest pain',
        'queueDate': '2024-01-10',
    }, format='json')
    assert r.status_code == 201
    assert '<script>' not in r.data['data']['reasonForVisit']
    assert 'Chest pain' in r.data['data']['reasonForVisit']


def test_markup_is_removed_entirely(patient, staff_client):
    r = staff_client.post(reverse('queue_collection'), {
        'patientId': patient.pk,
        'reasonForVisit': '<b>Chest</b> <a href="http://x">pain</a>',
        'queueDate': '2024-01-10',
    }, format='json')
    assert r.status_code == 201
    assert r.data['data']['reasonForVisit'] == 'Chest pain'


def test_plain_text_characters_are_kept(patient, staff_client, other_department):
    r = staff_client.post(reverse('queue_collection'), {
        'patientId': patient.pk,
        'reasonForVisit': 'Fever & cough, BP < 120',
        'queueDate': '2024-01-10',
    }, format='json')
    assert r.status_code == 201
    assert r.data['data']['reasonForVisit'] == 'Fever & cough, BP < 120'
    assert QueueEntry.objects.get(pk=r.data['data']['id']).reason_for_visit == 'Fever & cough, BP < 120'

    r = staff_client.post(reverse('queue_entry_transfer', args=[r.data['data']['id']]), {
        'toDepartmentId': other_department.pk, 'reason': 'R&D <i>overflow</i>',
    }, format='json')
    assert r.status_code == 200
    assert r.data['data']['transfer']['reason'] == 'R&D overflow'
