from typing import Optional

from core.models import Department, Doctor


def list_departments() -> list[dict]:
    return [{'id': d.id, 'name': d.name} for d in Department.objects.order_by('name')]


def list_doctors(department_id: Optional[int] = None, *, q: Optional[str] = None,
                 active_only: bool = True, page: Optional[int] = None,
                 page_size: Optional[int] = None) -> tuple[list[dict], int]:
    """Doctors available as queue assignment or transfer targets."""
    qs = Doctor.objects.select_related('department')
    if active_only:
        qs = qs.filter(status='active')
    if department_id:
        qs = qs.filter(department_id=department_id)
    if q:
        qs = qs.filter(full_name__icontains=q)

    total = qs.count()
    qs = qs.order_by('full_name', 'id')
    if page and page_size:
        start = (page - 1) * page_size
        qs = qs[start:start + page_size]

    data = [{
        'id': d.id,
        'name': d.full_name,
        'departmentId': d.department_id,
        'departmentName': d.department.name if d.department_id else None,
        'status': d.status,
        'avgConsultationMinutes': d.avg_consultation_minutes,
    } for d in qs]
    return data, total
