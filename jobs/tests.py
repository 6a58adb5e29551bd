"""
Tests for the job message outbox.
"""
from datetime import timedelta

import pytest
from django.core.management import call_command
from django.utils import timezone

from jobs.dispatch import claim_due_messages, dispatch, process_message, run_due_messages
from jobs.models import JobMessage
from jobs.registry import get_handler, job_handler, registered_events

CALLS = []
FAILURES = []


def _record_failure(payload, error):
    FAILURES.append((payload, str(error)))


@job_handler('test/ok')
def _ok_handler(payload):
    CALLS.append(payload)


@job_handler('test/boom', on_failure=_record_failure)
def _boom_handler(payload):
    raise RuntimeError('provider exploded')


class _PermanentError(Exception):
    retryable = False


@job_handler('test/denied', on_failure=_record_failure)
def _denied_handler(payload):
    raise _PermanentError('invalid credentials')


@pytest.fixture(autouse=True)
def _reset_calls():
    CALLS.clear()
    FAILURES.clear()


class TestRegistry:

    def test_executor_handlers_are_discovered(self):
        events = registered_events()
        assert 'audit/requested' in events
        assert 'site-audit/scan.requested' in events
        assert 'site-audit/scan.poll' in events
        assert 'local-seo/scan.requested' in events

    def test_duplicate_registration_rejected(self):
        with pytest.raises(ValueError):
            job_handler('test/ok')(lambda payload: None)

    def test_get_handler(self):
        assert get_handler('test/ok').func is _ok_handler
        assert get_handler('nope') is None


@pytest.mark.django_db
class TestDispatch:

    def test_dispatch_persists_pending_message(self):
        message = dispatch('test/ok', {'id': 1})
        message.refresh_from_db()
        assert message.status == 'pending'
        assert CALLS == []

    def test_eager_mode_runs_inline(self, settings):
        settings.JOBS_EAGER = True
        message = dispatch('test/ok', {'id': 2})
        message.refresh_from_db()
        assert message.status == 'done'
        assert CALLS == [{'id': 2}]

    def test_eager_mode_leaves_delayed_messages(self, settings):
        settings.JOBS_EAGER = True
        message = dispatch('test/ok', {'id': 3}, delay_seconds=30)
        message.refresh_from_db()
        assert message.status == 'pending'
        assert CALLS == []

    def test_run_due_messages_skips_future_messages(self):
        dispatch('test/ok', {'id': 'now'})
        dispatch('test/ok', {'id': 'later'}, delay_seconds=600)
        processed, succeeded = run_due_messages()
        assert (processed, succeeded) == (1, 1)
        assert CALLS == [{'id': 'now'}]

    def test_stale_processing_message_is_reclaimed(self, settings):
        settings.JOBS_VISIBILITY_TIMEOUT_SECONDS = 900
        message = dispatch('test/ok', {'id': 'orphaned'})
        assert [m.id for m in claim_due_messages()] == [message.id]
        JobMessage.objects.filter(pk=message.pk).update(updated_at=timezone.now() - timedelta(days=1))

        processed, succeeded = run_due_messages()

        assert (processed, succeeded) == (1, 1)
        assert CALLS == [{'id': 'orphaned'}]
        message.refresh_from_db()
        assert message.status == 'done'

    def test_recently_claimed_message_is_not_reclaimed(self, settings):
        settings.JOBS_VISIBILITY_TIMEOUT_SECONDS = 900
        dispatch('test/ok', {'id': 'running'})
        claim_due_messages()
        assert run_due_messages() == (0, 0)
        assert CALLS == []

    def test_failed_handler_is_rescheduled(self, settings):
        settings.JOBS_MAX_ATTEMPTS = 3
        message = dispatch('test/boom', {'id': 4})
        assert process_message(message) is False
        message.refresh_from_db()
        assert message.status == 'pending'
        assert message.attempts == 1
        assert message.last_error == 'provider exploded'
        assert message.available_at > timezone.now()
        assert FAILURES == []

    def test_last_attempt_runs_failure_hook(self, settings):
        settings.JOBS_MAX_ATTEMPTS = 1
        message = dispatch('test/boom', {'id': 5})
        process_message(message)
        message.refresh_from_db()
        assert message.status == 'failed'
        assert FAILURES == [({'id': 5}, 'provider exploded')]

    def test_non_retryable_error_fails_immediately(self, settings):
        settings.JOBS_MAX_ATTEMPTS = 3
        message = dispatch('test/denied', {'id': 7})
        process_message(message)
        message.refresh_from_db()
        assert message.status == 'failed'
        assert message.attempts == 1
        assert FAILURES == [({'id': 7}, 'invalid credentials')]

    def test_unknown_event_fails_message(self):
        message = JobMessage.objects.create(event='missing/handler', payload={})
        assert process_message(message) is False
        message.refresh_from_db()
        assert message.status == 'failed'
        assert 'No handler' in message.last_error

    def test_run_jobs_command_once(self):
        JobMessage.objects.create(event='test/ok', payload={'id': 6},
                                  available_at=timezone.now() - timedelta(seconds=1))
        call_command('run_jobs', '--once')
        assert CALLS == [{'id': 6}]
