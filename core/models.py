"""
Database models for the front-desk queue service.

The directory models (departments, doctors, patients and medical
records) are owned by other parts of the hospital system; the queue
core only reads them by id.  ``QueueEntry`` and ``QueueTransfer`` are
owned by the queue subsystem, and ``AuditEvent`` is the storage behind
the default audit sink.
"""
from __future__ import annotations

import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


class User(AbstractUser):
    """Front-desk operator account with a role.

    Roles mirror the admin UI: ``admin`` may perform destructive
    overrides, ``staff`` runs the desk and ``doctor`` calls patients.
    """
    ROLE_CHOICES = [
        ('admin', 'Administrator'),
        ('staff', 'Staff'),
        ('doctor', 'Doctor'),
    ]
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default='staff')

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


# ---------------------------------------------------------------------------
# Directory (read-only from the queue core's point of view)
# ---------------------------------------------------------------------------

class Department(models.Model):
    name = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


class Doctor(models.Model):
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
    ]
    user = models.OneToOneField(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='doctor_profile'
    )
    department = models.ForeignKey(
        Department, null=True, blank=True, on_delete=models.SET_NULL, related_name='doctors'
    )
    full_name = models.CharField(max_length=255)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=32, blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='active', db_index=True)
    avg_consultation_minutes = models.PositiveIntegerField(
        default=15, help_text="Average consultation length used for wait estimates"
    )

    def __str__(self) -> str:
        return self.full_name


def _generate_patient_uid() -> str:
    return f"P-{timezone.localdate():%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"


class Patient(models.Model):
    GENDER_CHOICES = [
        ('male', 'Male'),
        ('female', 'Female'),
        ('other', 'Other'),
    ]
    patient_uid = models.CharField(max_length=32, unique=True, default=_generate_patient_uid)
    full_name = models.CharField(max_length=255)
    date_of_birth = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES, blank=True)
    contact_number = models.CharField(max_length=32, blank=True)
    address = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.full_name} ({self.patient_uid})"


class MedicalRecord(models.Model):
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='medical_records')
    doctor = models.ForeignKey(
        Doctor, null=True, blank=True, on_delete=models.SET_NULL, related_name='medical_records'
    )
    diagnosis = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"Record #{self.pk} for {self.patient_id}"


# ---------------------------------------------------------------------------
# Queue
# ---------------------------------------------------------------------------

class QueueStatus(models.TextChoices):
    WAITING = 'waiting', 'Waiting'
    ATTENDING = 'attending', 'Attending'
    ATTENDED = 'attended', 'Attended'
    NO_SHOW = 'no_show', 'No show'


class QueuePriority(models.TextChoices):
    REGULAR = 'regular', 'Regular'
    SENIOR = 'senior', 'Senior citizen'
    PWD = 'pwd', 'Person with disability'
    EMERGENCY = 'emergency', 'Emergency'


class QueueEntry(models.Model):
    """One patient's visit in the day's service queue."""
    queue_number = models.PositiveIntegerField()
    queue_date = models.DateField(db_index=True)
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='queue_entries')
    department = models.ForeignKey(
        Department, null=True, blank=True, on_delete=models.SET_NULL, related_name='queue_entries'
    )
    doctor = models.ForeignKey(
        Doctor, null=True, blank=True, on_delete=models.SET_NULL, related_name='queue_entries'
    )
    medical_record = models.ForeignKey(
        MedicalRecord, null=True, blank=True, on_delete=models.SET_NULL, related_name='queue_entries'
    )
    reason_for_visit = models.TextField()
    priority = models.CharField(
        max_length=10, choices=QueuePriority.choices, default=QueuePriority.REGULAR, db_index=True
    )
    status = models.CharField(
        max_length=10, choices=QueueStatus.choices, default=QueueStatus.WAITING, db_index=True
    )
    called_at = models.DateTimeField(null=True, blank=True)
    served_at = models.DateTimeField(null=True, blank=True)
    estimated_wait_minutes = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'queue'
        constraints = [
            models.UniqueConstraint(fields=['queue_number', 'queue_date'], name='uniq_queue_number_per_date'),
        ]
        indexes = [
            models.Index(fields=['queue_date', 'status']),
            models.Index(fields=['queue_date', 'doctor']),
        ]

    def __str__(self) -> str:
        return f"#{self.queue_number} on {self.queue_date:%Y-%m-%d} ({self.status})"


class ImmutableRecord(Exception):
    """Raised when code tries to edit or delete a historical record."""


class QueueTransfer(models.Model):
    """A historical fact: an entry was reassigned to another doctor/department."""
    queue = models.ForeignKey(QueueEntry, on_delete=models.CASCADE, related_name='transfers')
    from_doctor = models.ForeignKey(
        Doctor, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    to_doctor = models.ForeignKey(
        Doctor, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    from_department = models.ForeignKey(
        Department, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    to_department = models.ForeignKey(
        Department, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    reason = models.TextField(blank=True, null=True)
    transferred_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='queue_transfers'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['queue', 'created_at']),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableRecord("queue transfers cannot be modified")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableRecord("queue transfers cannot be deleted")

    def __str__(self) -> str:
        return f"transfer q={self.queue_id} d={self.from_doctor_id}->{self.to_doctor_id}"


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------

class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=64, blank=True, null=True)
    description = models.TextField(blank=True)
    changes = models.JSONField(default=dict, blank=True)
    ip = models.GenericIPAddressField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at']),
            models.Index(fields=['object_type', 'object_id', 'created_at']),
        ]

    def __str__(self):
        return f"{self.action}:{self.object_type}#{self.object_id}@{self.created_at:%F %T}"
