"""
Google Places lookup for Google Business Profile enrichment.
"""
import logging

import requests
from django.conf import settings

from .errors import PERMANENT, RETRYABLE, ProviderError, classify_http_status

logger = logging.getLogger(__name__)

PROVIDER = 'google_places'
PLACES_API_BASE = 'https://maps.googleapis.com/maps/api/place'

SEARCH_FIELDS = ['place_id', 'name', 'formatted_address', 'business_status']
DETAIL_FIELDS = [
    'place_id', 'name', 'formatted_address', 'geometry', 'business_status', 'types', 'url',
    'formatted_phone_number', 'international_phone_number', 'website', 'opening_hours',
    'rating', 'user_ratings_total', 'reviews', 'photos',
]

DAY_NAMES = ['sunday', 'monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday']
GENERIC_TYPES = ('point_of_interest', 'establishment')


class PlacesClient:
    def __init__(self, api_key=None, timeout=None, session=None):
        self.api_key = api_key if api_key is not None else settings.GOOGLE_PLACES_API_KEY
        self.timeout = timeout or settings.GOOGLE_PLACES_TIMEOUT
        self.session = session or requests.Session()

    def is_configured(self):
        return bool(self.api_key)

    def _get(self, endpoint, params):
        if not self.api_key:
            raise ProviderError('Google Places API key is not configured', PERMANENT, provider=PROVIDER)
        try:
            response = self.session.get(
                f"{PLACES_API_BASE}/{endpoint}/json",
                params={**params, 'key': self.api_key},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ProviderError(f"Places API network error: {e}", provider=PROVIDER) from e

        if response.status_code != 200:
            raise ProviderError(
                f"Places API error: {response.status_code}",
                classify_http_status(response.status_code) or PERMANENT,
                provider=PROVIDER,
                http_status=response.status_code,
            )
        return response.json()

    def find_place(self, query, location=None):
        data = self._get('findplacefromtext', {
            'input': f"{query} {location}" if location else query,
            'inputtype': 'textquery',
            'fields': ','.join(SEARCH_FIELDS),
        })
        status = data.get('status')
        if status not in ('OK', 'ZERO_RESULTS'):
            raise ProviderError(
                f"Places API error: {status} - {data.get('error_message') or 'Unknown error'}",
                PERMANENT if status in ('REQUEST_DENIED', 'INVALID_REQUEST') else RETRYABLE,
                provider=PROVIDER,
            )
        return data.get('candidates') or []

    def get_place_details(self, place_id):
        data = self._get('details', {'place_id': place_id, 'fields': ','.join(DETAIL_FIELDS)})
        status = data.get('status')
        if status in ('ZERO_RESULTS', 'INVALID_REQUEST', 'NOT_FOUND'):
            return None
        if status != 'OK':
            raise ProviderError(
                f"Places API error: {status} - {data.get('error_message') or 'Unknown error'}",
                provider=PROVIDER,
            )
        return data.get('result')

    def find_business(self, name, location=None):
        """
        Look up a business by name (and optional "City, ST") and return its
        normalized profile, or None when there is no match.
        """
        candidates = self.find_place(name, location)
        if not candidates:
            logger.info("No Places match for %r (%s)", name, location)
            return None
        details = self.get_place_details(candidates[0]['place_id'])
        return normalize_place(details) if details else None

    def get_business_by_place_id(self, place_id):
        details = self.get_place_details(place_id)
        return normalize_place(details) if details else None


def _format_time(value):
    if value and len(value) == 4:
        return f"{value[:2]}:{value[2:]}"
    return value


def parse_work_hours(opening_hours):
    """Group opening periods by weekday as {'monday': [{'open': '09:00', 'close': '17:00'}]}."""
    if not opening_hours or not opening_hours.get('periods'):
        return None
    hours = {}
    for period in opening_hours['periods']:
        opened = period.get('open') or {}
        day = opened.get('day')
        if day is None or not 0 <= day <= 6:
            continue
        closed = period.get('close')
        hours.setdefault(DAY_NAMES[day], []).append({
            'open': _format_time(opened.get('time', '')),
            'close': _format_time(closed.get('time', '')) if closed else '23:59',
        })
    return hours


def normalize_place(details):
    categories = [t for t in details.get('types') or [] if t not in GENERIC_TYPES]
    location = (details.get('geometry') or {}).get('location') or {}
    return {
        'has_gmb_listing': True,
        'business_name': details.get('name'),
        'place_id': details.get('place_id'),
        'address': details.get('formatted_address'),
        'phone': details.get('formatted_phone_number') or details.get('international_phone_number'),
        'website': details.get('website'),
        'rating': details.get('rating'),
        'review_count': details.get('user_ratings_total') or 0,
        'photos_count': len(details.get('photos') or []),
        'primary_category': categories[0] if categories else None,
        'categories': categories,
        'hours': parse_work_hours(details.get('opening_hours')),
        'reviews': [
            {'rating': r.get('rating'), 'text': r.get('text'), 'time': r.get('time')}
            for r in (details.get('reviews') or [])[:5]
        ],
        'latitude': location.get('lat'),
        'longitude': location.get('lng'),
    }


def get_places_client():
    return PlacesClient()
