import html

import bleach
from rest_framework import serializers

from core.models import QueuePriority, QueueStatus

# Status names used by older admin UI builds.
LEGACY_STATUS_ALIASES = {
    'serving': QueueStatus.ATTENDING,
    'served': QueueStatus.ATTENDED,
    'skipped': QueueStatus.NO_SHOW,
}


def _clean_text(v):
    # plain text: drop every tag, keep literal characters such as & and <
    cleaned = bleach.clean((v or '').strip(), tags=set(), attributes={}, strip=True)
    return html.unescape(cleaned).strip()


class _AcceptsSnakeCase(serializers.Serializer):
    """Also accept the snake_case keys sent by the legacy admin UI."""
    snake_case_aliases: dict = {}

    def to_internal_value(self, data):
        if hasattr(data, 'items'):
            data = {self.snake_case_aliases.get(k, k): v for k, v in data.items()}
        return super().to_internal_value(data)


class QueueCreateSerializer(_AcceptsSnakeCase):
    snake_case_aliases = {
        'patient_id': 'patientId',
        'reason_for_visit': 'reasonForVisit',
        'department_id': 'departmentId',
        'doctor_id': 'doctorId',
        'queue_date': 'queueDate',
    }

    patientId = serializers.IntegerField(min_value=1)
    reasonForVisit = serializers.CharField(max_length=2000)
    departmentId = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    doctorId = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    priority = serializers.ChoiceField(choices=QueuePriority.values, required=False)
    queueDate = serializers.DateField(required=False, allow_null=True)

    def validate_reasonForVisit(self, v):
        v = _clean_text(v)
        if not v:
            raise serializers.ValidationError('reason for visit is required')
        return v


class QueueStatusUpdateSerializer(_AcceptsSnakeCase):
    snake_case_aliases = {'medical_record_id': 'medicalRecordId'}

    status = serializers.CharField()
    medicalRecordId = serializers.IntegerField(min_value=1, required=False, allow_null=True)

    def validate_status(self, v):
        v = (v or '').strip().lower()
        v = LEGACY_STATUS_ALIASES.get(v, v)
        if v not in QueueStatus.values:
            raise serializers.ValidationError(f'unknown status {v}')
        return v


class QueueTransferSerializer(_AcceptsSnakeCase):
    snake_case_aliases = {
        'to_doctor_id': 'toDoctorId',
        'to_department_id': 'toDepartmentId',
    }

    toDoctorId = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    toDepartmentId = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    reason = serializers.CharField(max_length=1000, required=False, allow_blank=True, allow_null=True)

    def validate_reason(self, v):
        return _clean_text(v) or None


class QueueSnapshotQuerySerializer(serializers.Serializer):
    date = serializers.DateField(required=False)
    status = serializers.ChoiceField(choices=QueueStatus.values, required=False)
    doctorId = serializers.IntegerField(min_value=1, required=False)
    departmentId = serializers.IntegerField(min_value=1, required=False)


class QueueDateQuerySerializer(serializers.Serializer):
    date = serializers.DateField(required=False)
    limit = serializers.IntegerField(min_value=1, max_value=50, required=False)
