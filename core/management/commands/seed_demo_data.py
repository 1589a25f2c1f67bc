"""
Management command to populate the database with demo data.

Creates departments, doctors, front-desk accounts, patients and a
morning's worth of queue entries for today.  Queue entries are issued
through the queue service so numbers, audit events and wait estimates
are produced exactly as in normal operation.
"""
from datetime import date

from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand

from core.models import Department, Doctor, Patient, QueueEntry, QueuePriority, QueueStatus, User
from core.services.numbering import facility_today
from core.services.queue import create_queue_entry, update_queue_entry_status

DEPARTMENTS = [
    'General Medicine',
    'Pediatrics',
    'Cardiology',
    'Orthopedics',
    'Dermatology',
    'Gynecology',
    'Ophthalmology',
    'ENT (Ear, Nose, Throat)',
    'Neurology',
    'Psychiatry',
]

DOCTORS = [
    ('Dr. John Smith', 'General Medicine', 'john.smith@hospital.com', 15),
    ('Dr. Emily Johnson', 'Pediatrics', 'emily.johnson@hospital.com', 20),
    ('Dr. Michael Brown', 'Cardiology', 'michael.brown@hospital.com', 25),
    ('Dr. Sarah Davis', 'Orthopedics', 'sarah.davis@hospital.com', 20),
    ('Dr. Robert Wilson', 'Dermatology', 'robert.wilson@hospital.com', 10),
]

ACCOUNTS = [
    ('admin', 'admin'),
    ('frontdesk', 'staff'),
]

PATIENTS = [
    ('Juan Dela Cruz', date(1958, 3, 14), 'male'),
    ('Maria Santos', date(1990, 7, 2), 'female'),
    ('Jose Reyes', date(1985, 11, 23), 'male'),
    ('Ana Garcia', date(1972, 1, 9), 'female'),
    ('Pedro Bautista', date(2001, 5, 30), 'male'),
]

# (patient index, doctor index, reason, priority, final status)
VISITS = [
    (0, 0, 'Regular checkup', QueuePriority.SENIOR, QueueStatus.ATTENDED),
    (1, 1, 'Fever and cough', QueuePriority.REGULAR, QueueStatus.ATTENDING),
    (2, 3, 'Back pain consultation', QueuePriority.REGULAR, QueueStatus.WAITING),
    (3, 2, 'Hypertension follow-up', QueuePriority.SENIOR, QueueStatus.WAITING),
    (4, 0, 'Diabetes consultation', QueuePriority.REGULAR, QueueStatus.WAITING),
]


class Command(BaseCommand):
    help = 'Populate database with demo departments, doctors, patients and today\'s queue'

    def add_arguments(self, parser):
        parser.add_argument('--password', default='changeme', help='password for the demo accounts')

    def handle(self, *args, **options):
        departments = self.create_departments()
        doctors = self.create_doctors(departments)
        self.create_accounts(options['password'])
        patients = self.create_patients()
        created = self.create_queue(patients, doctors)
        self.stdout.write(self.style.SUCCESS(
            f'Demo data ready: {len(departments)} departments, {len(doctors)} doctors, '
            f'{len(patients)} patients, {created} queue entries'
        ))

    def create_departments(self):
        return {name: Department.objects.get_or_create(name=name)[0] for name in DEPARTMENTS}

    def create_doctors(self, departments):
        doctors = []
        for i, (full_name, dept, email, minutes) in enumerate(DOCTORS):
            doctor, _ = Doctor.objects.update_or_create(
                full_name=full_name,
                defaults={
                    'department': departments[dept],
                    'email': email,
                    'phone': f'+63 912 345 {6789 + i}',
                    'status': 'active',
                    'avg_consultation_minutes': minutes,
                },
            )
            doctors.append(doctor)
        return doctors

    def create_accounts(self, password):
        for username, role in ACCOUNTS:
            User.objects.update_or_create(
                username=username,
                defaults={
                    'role': role,
                    'password': make_password(password),
                    'is_active': True,
                    'is_staff': role == 'admin',
                },
            )
            self.stdout.write(f'account: {username} ({role})')

    def create_patients(self):
        patients = []
        for full_name, dob, gender in PATIENTS:
            patient, _ = Patient.objects.get_or_create(
                full_name=full_name,
                defaults={'date_of_birth': dob, 'gender': gender},
            )
            patients.append(patient)
        return patients

    def create_queue(self, patients, doctors):
        today = facility_today()
        if QueueEntry.objects.filter(queue_date=today).exists():
            self.stdout.write(self.style.WARNING(f'queue for {today} already has entries, skipping'))
            return 0

        for p_idx, d_idx, reason, priority, final_status in VISITS:
            doctor = doctors[d_idx]
            entry = create_queue_entry(
                patient_id=patients[p_idx].pk,
                reason_for_visit=reason,
                doctor_id=doctor.pk,
                department_id=doctor.department_id,
                priority=priority,
                queue_date=today,
            )
            if final_status != QueueStatus.WAITING:
                update_queue_entry_status(entry.pk, status=QueueStatus.ATTENDING)
            if final_status == QueueStatus.ATTENDED:
                update_queue_entry_status(entry.pk, status=QueueStatus.ATTENDED)
        return len(VISITS)
