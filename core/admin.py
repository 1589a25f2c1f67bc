"""
Django admin registrations for the front-desk models.

Queue transfers and audit events are history: the admin shows them
read-only.
"""

from django.contrib import admin

from .models import (
    AuditEvent,
    Department,
    Doctor,
    MedicalRecord,
    Patient,
    QueueEntry,
    QueueTransfer,
    User,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'role', 'is_staff', 'is_superuser')
    list_filter = ('role',)
    search_fields = ('username', 'first_name', 'last_name')


@admin.register(Department)
class DepartmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'created_at')
    search_fields = ('name',)


@admin.register(Doctor)
class DoctorAdmin(admin.ModelAdmin):
    list_display = ('id', 'full_name', 'department', 'status', 'avg_consultation_minutes')
    list_filter = ('status', 'department')
    search_fields = ('full_name', 'email')


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('patient_uid', 'full_name', 'gender', 'contact_number', 'created_at')
    list_filter = ('gender',)
    search_fields = ('patient_uid', 'full_name', 'contact_number')


@admin.register(MedicalRecord)
class MedicalRecordAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'created_at')
    search_fields = ('patient__patient_uid', 'patient__full_name')


@admin.register(QueueEntry)
class QueueEntryAdmin(admin.ModelAdmin):
    list_display = ('id', 'queue_date', 'queue_number', 'patient', 'doctor', 'priority', 'status',
                    'estimated_wait_minutes')
    list_filter = ('queue_date', 'status', 'priority', 'department')
    search_fields = ('id', 'patient__patient_uid', 'patient__full_name')
    readonly_fields = ('queue_number', 'queue_date', 'called_at', 'served_at', 'estimated_wait_minutes')


class _ReadOnlyAdmin(admin.ModelAdmin):
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(QueueTransfer)
class QueueTransferAdmin(_ReadOnlyAdmin):
    list_display = ('queue', 'from_doctor', 'to_doctor', 'from_department', 'to_department',
                    'transferred_by', 'created_at')
    search_fields = ('queue__id', 'transferred_by__username')


@admin.register(AuditEvent)
class AuditEventAdmin(_ReadOnlyAdmin):
    list_display = ('action', 'object_type', 'object_id', 'user', 'created_at')
    list_filter = ('action', 'object_type')
    search_fields = ('object_id', 'description', 'user__username')
