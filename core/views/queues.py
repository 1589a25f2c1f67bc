"""
Queue endpoints.

Staff create entries, move them through the status state machine and
transfer them between doctors; administrators may delete entries as
an override.  The display endpoint is public and only exposes ticket
numbers.  Business rules live in :mod:`core.services.queue`; these
views validate input, call the service and shape the JSON.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from ..permissions import IsAdminRole, IsStaffRole
from ..serializers.queue import (
    QueueCreateSerializer,
    QueueDateQuerySerializer,
    QueueSnapshotQuerySerializer,
    QueueStatusUpdateSerializer,
    QueueTransferSerializer,
)
from ..services.queue import (
    create_queue_entry,
    delete_queue_entry,
    format_display_entry,
    format_entry,
    format_transfer,
    get_display_board,
    get_queue_entry,
    get_queue_snapshot,
    get_queue_statistics,
    list_queue_transfers,
    transfer_queue_entry,
    update_queue_entry_status,
)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def queue_collection(request):
    """``GET``: the day's queue in serving order with counts by status.
    ``POST``: add a patient to the queue with the next ticket number.
    """
    if request.method == 'GET':
        q = QueueSnapshotQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        vd = q.validated_data
        snap = get_queue_snapshot(
            vd.get('date'),
            status=vd.get('status'),
            doctor_id=vd.get('doctorId'),
            department_id=vd.get('departmentId'),
        )
        return Response({
            'ok': True,
            'date': snap.date.isoformat(),
            'entries': [format_entry(e) for e in snap.entries],
            'counts': snap.counts,
        })

    s = QueueCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    entry = create_queue_entry(
        patient_id=vd['patientId'],
        reason_for_visit=vd['reasonForVisit'],
        department_id=vd.get('departmentId'),
        doctor_id=vd.get('doctorId'),
        priority=vd.get('priority'),
        queue_date=vd.get('queueDate'),
        user=request.user,
    )
    return Response({'ok': True, 'data': format_entry(entry)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsStaffRole])
def queue_entry(request, pk: int):
    """Read an entry, change its status, or (admins) delete it."""
    if request.method == 'GET':
        return Response({'ok': True, 'data': format_entry(get_queue_entry(pk))})

    if request.method == 'DELETE':
        if not IsAdminRole().has_permission(request, None):
            raise PermissionDenied('only administrators may delete queue entries')
        delete_queue_entry(pk, user=request.user)
        return Response({'ok': True, 'message': 'Queue entry deleted successfully'})

    s = QueueStatusUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    entry = update_queue_entry_status(
        pk,
        status=vd['status'],
        medical_record_id=vd.get('medicalRecordId'),
        user=request.user,
    )
    return Response({'ok': True, 'data': format_entry(entry)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def queue_entry_transfer(request, pk: int):
    """Reassign an entry to another doctor and/or department."""
    s = QueueTransferSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    transfer = transfer_queue_entry(
        pk,
        to_doctor_id=vd.get('toDoctorId'),
        to_department_id=vd.get('toDepartmentId'),
        reason=vd.get('reason'),
        user=request.user,
    )
    return Response({
        'ok': True,
        'data': {
            'queue': format_entry(get_queue_entry(pk)),
            'transfer': format_transfer(transfer),
        },
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def queue_entry_transfers(request, pk: int):
    """Transfer history of an entry in creation order."""
    return Response({'ok': True, 'data': [format_transfer(t) for t in list_queue_transfers(pk)]})


@api_view(['GET'])
@permission_classes([AllowAny])
def queue_display(request):
    """Public waiting-room board: who is being served and who is next."""
    q = QueueDateQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    board = get_display_board(q.validated_data.get('date'), q.validated_data.get('limit'))
    return Response({
        'ok': True,
        'date': board['date'].isoformat(),
        'nowServing': [format_display_entry(e) for e in board['now_serving']],
        'next': [format_display_entry(e) for e in board['next']],
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def queue_statistics(request):
    """Dashboard counters for a date."""
    q = QueueDateQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    stats = get_queue_statistics(q.validated_data.get('date'))
    now_serving = stats['now_serving']
    return Response({
        'ok': True,
        'data': {
            'date': stats['date'].isoformat(),
            'totalPatients': stats['total'],
            'waiting': stats['waiting'],
            'attending': stats['attending'],
            'attended': stats['attended'],
            'noShow': stats['no_show'],
            'nowServing': format_entry(now_serving) if now_serving else None,
            'longestWaitMinutes': stats['longest_wait_minutes'],
        },
    })
