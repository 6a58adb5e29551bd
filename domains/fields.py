from rest_framework import serializers

from .utils import is_valid_domain, normalize_domain


class DomainNameField(serializers.CharField):
    """CharField that normalizes input to a bare lowercase host and validates it."""

    default_error_messages = {
        'invalid_domain': 'Enter a valid domain, e.g. example.com',
    }

    def __init__(self, strip_www=False, **kwargs):
        self.strip_www = strip_www
        kwargs.setdefault('max_length', 255)
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        domain = normalize_domain(super().to_internal_value(data), strip_www=self.strip_www)
        if not is_valid_domain(domain):
            self.fail('invalid_domain')
        return domain
