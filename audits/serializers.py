"""
Serializers for audits.
"""
from rest_framework import serializers

from domains.fields import DomainNameField

from .models import Audit


class AuditOptionsSerializer(serializers.Serializer):
    skip_cache = serializers.BooleanField(default=False)
    priority = serializers.ChoiceField(choices=['low', 'normal', 'high'], default='normal')
    keywords = serializers.ListField(
        child=serializers.CharField(max_length=200), max_length=10, required=False
    )


class AuditCreateSerializer(serializers.Serializer):
    domain = DomainNameField()
    business_name = serializers.CharField(max_length=200, required=False, allow_blank=True, allow_null=True)
    location = serializers.CharField(max_length=200, required=False, allow_blank=True, allow_null=True)
    city = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    state = serializers.CharField(max_length=2, required=False, allow_blank=True, allow_null=True)
    gmb_place_id = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    target_keywords = serializers.ListField(
        child=serializers.CharField(max_length=200), max_length=20, required=False
    )
    competitor_domains = serializers.ListField(child=DomainNameField(), max_length=5, required=False)
    options = AuditOptionsSerializer(required=False)
    domain_id = serializers.UUIDField(required=False, allow_null=True)

    def validate_state(self, value):
        if value and (len(value) != 2 or not value.isalpha()):
            raise serializers.ValidationError("Use a two-letter state code.")
        return value.upper() if value else None

    def validate_competitor_domains(self, value):
        # Order-preserving de-duplication
        return list(dict.fromkeys(value))


class AuditListSerializer(serializers.ModelSerializer):
    class Meta:
        model = Audit
        fields = ('id', 'domain', 'domain_ref', 'status', 'progress', 'health_score', 'created_at', 'completed_at')


class AuditSerializer(serializers.ModelSerializer):
    is_complete = serializers.BooleanField(read_only=True)
    is_failed = serializers.BooleanField(read_only=True)
    is_in_progress = serializers.BooleanField(read_only=True)

    class Meta:
        model = Audit
        fields = (
            'id', 'domain', 'domain_ref', 'status', 'progress', 'current_step', 'error_message',
            'business_name', 'location', 'city', 'state', 'gmb_place_id',
            'target_keywords', 'competitor_domains', 'options', 'step_results', 'health_score',
            'started_at', 'completed_at', 'created_at', 'updated_at',
            'is_complete', 'is_failed', 'is_in_progress',
        )
