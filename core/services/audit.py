"""
Audit event sinks.

Queue operations describe every mutation to a sink instead of relying
on model signals.  The sink is chosen by ``settings.AUDIT_SINK`` and
can be swapped (or passed explicitly) in tests.  Emission is
best-effort: a failing sink is logged and never undoes the mutation it
describes.
"""
import json
import logging
from typing import Optional, Any, Dict

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction
from django.utils.module_loading import import_string

from core.models import AuditEvent

logger = logging.getLogger(__name__)


def snapshot(instance) -> Dict[str, Any]:
    """JSON-safe dict of a model instance's concrete field values."""
    data = {f.attname: f.value_from_object(instance) for f in instance._meta.concrete_fields}
    return json.loads(json.dumps(data, cls=DjangoJSONEncoder))


class AuditSink:
    """Interface for audit consumers."""

    def emit(self, action: str, entity_type: str, entity_id, description: str,
             changes: Optional[Dict[str, Any]] = None, *, user=None) -> None:
        raise NotImplementedError


class DatabaseAuditSink(AuditSink):
    """Writes one ``AuditEvent`` row per emission."""

    def emit(self, action, entity_type, entity_id, description, changes=None, *, user=None):
        try:
            # own savepoint so a failed insert cannot poison the caller's transaction
            with transaction.atomic():
                AuditEvent.objects.create(
                    user=user if getattr(user, 'pk', None) else None,
                    action=action,
                    object_type=entity_type,
                    object_id=str(entity_id) if entity_id is not None else None,
                    description=description,
                    changes=changes or {},
                )
        except Exception:
            logger.exception('failed to write audit event %s %s#%s', action, entity_type, entity_id)


class LoggingAuditSink(AuditSink):
    """Sends audit events to the ``core.audit`` logger only."""

    log = logging.getLogger('core.audit')

    def emit(self, action, entity_type, entity_id, description, changes=None, *, user=None):
        self.log.info('%s %s#%s by %s: %s', action, entity_type, entity_id,
                      getattr(user, 'username', None) or '-', description)


def get_audit_sink() -> AuditSink:
    return import_string(settings.AUDIT_SINK)()


def emit_safely(sink: AuditSink, action: str, entity_type: str, entity_id, description: str,
                changes: Optional[Dict[str, Any]] = None, *, user=None) -> None:
    try:
        sink.emit(action, entity_type, entity_id, description, changes, user=user)
    except Exception:
        logger.exception('audit sink %s failed for %s %s#%s',
                         type(sink).__name__, action, entity_type, entity_id)
