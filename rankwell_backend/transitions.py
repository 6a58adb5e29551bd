"""
Status-guarded transitions shared by the audit, site audit, and geo-grid job models.

A transition is a compare-and-set UPDATE filtered on the status the caller
observed, so a redelivered job message that races an earlier delivery loses
cleanly instead of overwriting newer state.
"""
import logging

from django.utils import timezone

from .exceptions import InvalidTransition

logger = logging.getLogger(__name__)


def apply_transition(instance, allowed, target, entity, **fields):
    current = instance.status
    if target not in allowed.get(current, ()):
        raise InvalidTransition(entity, current, target)

    fields['status'] = target
    if hasattr(instance, 'updated_at'):
        fields.setdefault('updated_at', timezone.now())

    model = type(instance)
    updated = model.objects.filter(pk=instance.pk, status=current).update(**fields)
    if not updated:
        instance.refresh_from_db(fields=['status'])
        raise InvalidTransition(entity, current, target, reason=f"status is now {instance.status}")

    for name, value in fields.items():
        setattr(instance, name, value)
    logger.info("%s %s: %s -> %s", entity, instance.pk, current, target)
    return instance


def clamp_progress(value):
    """Clamp a progress value into [0, 100]; non-numeric input becomes 0."""
    try:
        value = int(round(float(value)))
    except (TypeError, ValueError):
        return 0
    return max(0, min(100, value))


def update_progress_if_active(instance, terminal, value, **fields):
    """
    Write a clamped progress value (plus optional extra fields) unless the
    row has already reached a terminal status. Returns True when written.
    """
    fields['progress'] = clamp_progress(value)
    if hasattr(instance, 'updated_at'):
        fields.setdefault('updated_at', timezone.now())
    model = type(instance)
    updated = model.objects.filter(pk=instance.pk).exclude(status__in=terminal).update(**fields)
    if updated:
        for name, val in fields.items():
            setattr(instance, name, val)
    return bool(updated)
