"""
Job handler registry.

Apps declare handlers in an `executor` module:

    @job_handler('audit/requested', on_failure=fail_audit_from_job)
    def run_audit(payload):
        ...
"""
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from django.utils.module_loading import autodiscover_modules

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobHandler:
    event: str
    func: Callable[[dict], object]
    on_failure: Optional[Callable[[dict, Exception], object]] = None


_HANDLERS: Dict[str, JobHandler] = {}


def job_handler(event, on_failure=None):
    def decorator(func):
        if event in _HANDLERS and _HANDLERS[event].func is not func:
            raise ValueError(f"Duplicate job handler for {event!r}")
        _HANDLERS[event] = JobHandler(event=event, func=func, on_failure=on_failure)
        return func
    return decorator


def get_handler(event) -> Optional[JobHandler]:
    return _HANDLERS.get(event)


def registered_events():
    return sorted(_HANDLERS)


def autodiscover_handlers():
    autodiscover_modules('executor')
    logger.debug("Registered job handlers: %s", ', '.join(registered_events()))
