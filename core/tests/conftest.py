import pytest
from rest_framework.test import APIClient

from core.models import Department, Doctor, Patient, User


@pytest.fixture
def staff_user(db):
    return User.objects.create_user(username='desk1', password='P@ssw0rd1', role='staff')


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(username='admin1', password='P@ssw0rd1', role='admin')


@pytest.fixture
def staff_client(staff_user):
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client


@pytest.fixture
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


@pytest.fixture
def department(db):
    return Department.objects.create(name='General Medicine')


@pytest.fixture
def other_department(db):
    return Department.objects.create(name='Cardiology')


@pytest.fixture
def doctor(department):
    return Doctor.objects.create(full_name='Dr. John Smith', department=department, avg_consultation_minutes=15)


@pytest.fixture
def make_patient(db):
    counter = {'n': 0}

    def _make(name=None):
        counter['n'] += 1
        return Patient.objects.create(full_name=name or f'Patient {counter["n"]}')
    return _make


@pytest.fixture
def patient(make_patient):
    return make_patient('Juan Dela Cruz')
