"""
Serializers for the Domain model.
"""
from rest_framework import serializers

from .fields import DomainNameField
from .models import Domain


class DomainSerializer(serializers.ModelSerializer):
    """Serializer for Domain model. The domain string is normalized on write."""
    domain = DomainNameField()
    audit_count = serializers.SerializerMethodField()
    scan_count = serializers.SerializerMethodField()

    class Meta:
        model = Domain
        fields = (
            'id', 'domain', 'display_name', 'business_name', 'city', 'state',
            'is_active', 'created_at', 'updated_at', 'audit_count', 'scan_count',
        )
        read_only_fields = ('id', 'created_at', 'updated_at')

    def get_audit_count(self, obj):
        return obj.audits.count()

    def get_scan_count(self, obj):
        return obj.site_audit_scans.count()

    def validate_domain(self, domain):
        request = self.context.get('request')
        if request is not None:
            existing = Domain.objects.filter(user=request.user, domain=domain)
            if self.instance is not None:
                existing = existing.exclude(pk=self.instance.pk)
            if existing.exists():
                raise serializers.ValidationError("You are already tracking this domain.")
        return domain

    def validate_state(self, value):
        if value and (len(value) != 2 or not value.isalpha()):
            raise serializers.ValidationError("Use a two-letter state code.")
        return value.upper() if value else value
