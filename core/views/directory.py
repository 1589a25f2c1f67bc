from django.core.cache import cache
from rest_framework import serializers
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.permissions import IsStaffRole
from core.services.directory import list_departments, list_doctors

DIRECTORY_CACHE_SECONDS = 60
DEFAULT_PAGE_SIZE = 20


class DoctorListQuerySerializer(serializers.Serializer):
    departmentId = serializers.IntegerField(min_value=1, required=False)
    q = serializers.CharField(max_length=64, required=False, allow_blank=True)
    includeInactive = serializers.BooleanField(required=False, default=False)
    page = serializers.IntegerField(min_value=1, required=False)
    pageSize = serializers.IntegerField(min_value=1, max_value=200, required=False)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def departments(request):
    """Departments for the queue form dropdown."""
    cached = cache.get('directory:departments')
    if cached:
        return Response(cached)
    payload = {'ok': True, 'data': list_departments()}
    cache.set('directory:departments', payload, DIRECTORY_CACHE_SECONDS)
    return Response(payload)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStaffRole])
def doctors(request):
    """Doctors for the queue and transfer forms.

    Query params:
      - departmentId: only doctors of that department
      - q: name contains
      - includeInactive: 1 to list inactive doctors too
      - page, pageSize: pagination (optional; pageSize defaults to 20 when page is given)
    """
    s = DoctorListQuerySerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    page = vd.get('page')
    page_size = vd.get('pageSize') or (DEFAULT_PAGE_SIZE if page else None)
    if page_size and not page:
        page = 1
    data, total = list_doctors(
        vd.get('departmentId'),
        q=(vd.get('q') or '').strip() or None,
        active_only=not vd['includeInactive'],
        page=page,
        page_size=page_size,
    )
    return Response({
        'ok': True,
        'data': data,
        'pagination': {'total': total, 'page': page or 1, 'pageSize': page_size or total},
    })
