"""
Job message outbox.

Each row is one "run this handler later" message. Messages are drained by
`manage.py run_jobs` (or processed inline when JOBS_EAGER is on).
"""
import uuid

from django.db import models
from django.utils import timezone


class JobMessage(models.Model):
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('processing', 'Processing'),
        ('done', 'Done'),
        ('failed', 'Failed'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.CharField(max_length=100, db_index=True)
    payload = models.JSONField(default=dict)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    attempts = models.IntegerField(default=0)
    available_at = models.DateTimeField(default=timezone.now)
    last_error = models.TextField(blank=True, null=True)
    processed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'job_messages'
        ordering = ['available_at', 'created_at']
        indexes = [
            models.Index(fields=['status', 'available_at'], name='job_msg_status_avail_idx'),
        ]

    def __str__(self):
        return f"{self.event} [{self.status}] attempt {self.attempts}"
