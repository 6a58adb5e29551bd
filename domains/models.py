"""
Tracked domain model.
"""
import uuid

from django.conf import settings
from django.db import models


class Domain(models.Model):
    """
    A website a user tracks. Audits and site audit scans may link to one.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='domains'
    )
    domain = models.CharField(max_length=255, help_text="Normalized host, e.g. example.com")
    display_name = models.CharField(max_length=200, blank=True)
    business_name = models.CharField(max_length=200, blank=True, null=True)
    city = models.CharField(max_length=100, blank=True, null=True)
    state = models.CharField(max_length=2, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'domains'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['user', 'domain'], name='unique_user_domain'),
        ]

    def __str__(self):
        return self.display_name or self.domain
