"""
Local keyword generation from service templates.

Placeholders: {city} (lowercase city), {state} (lowercase abbreviation),
{state_full} (lowercase state name).
"""
MAX_GENERATED_KEYWORDS = 20

STATE_MAP = {
    'AL': 'alabama', 'AK': 'alaska', 'AZ': 'arizona', 'AR': 'arkansas',
    'CA': 'california', 'CO': 'colorado', 'CT': 'connecticut', 'DE': 'delaware',
    'DC': 'district of columbia', 'FL': 'florida', 'GA': 'georgia', 'HI': 'hawaii',
    'ID': 'idaho', 'IL': 'illinois', 'IN': 'indiana', 'IA': 'iowa',
    'KS': 'kansas', 'KY': 'kentucky', 'LA': 'louisiana', 'ME': 'maine',
    'MD': 'maryland', 'MA': 'massachusetts', 'MI': 'michigan', 'MN': 'minnesota',
    'MS': 'mississippi', 'MO': 'missouri', 'MT': 'montana', 'NE': 'nebraska',
    'NV': 'nevada', 'NH': 'new hampshire', 'NJ': 'new jersey', 'NM': 'new mexico',
    'NY': 'new york', 'NC': 'north carolina', 'ND': 'north dakota', 'OH': 'ohio',
    'OK': 'oklahoma', 'OR': 'oregon', 'PA': 'pennsylvania', 'RI': 'rhode island',
    'SC': 'south carolina', 'SD': 'south dakota', 'TN': 'tennessee', 'TX': 'texas',
    'UT': 'utah', 'VT': 'vermont', 'VA': 'virginia', 'WA': 'washington',
    'WV': 'west virginia', 'WI': 'wisconsin', 'WY': 'wyoming',
}

# Ordered by search demand; the first MAX_GENERATED_KEYWORDS usable ones are kept
KEYWORD_TEMPLATES = [
    'dentist {city}',
    'dentist {city} {state}',
    'emergency dentist {city}',
    'dental implants {city}',
    '{city} dentist',
    'dentist in {city}',
    'orthodontist {city}',
    'pediatric dentist {city}',
    'teeth whitening {city}',
    'invisalign {city}',
    'best dentist {city}',
    'dental implants {city} {state}',
    'emergency dentist in {city} {state}',
    'cosmetic dentist {city}',
    'dental clinic {city}',
    'root canal {city}',
    'veneers {city}',
    'wisdom teeth removal {city}',
    'dentist in {city} {state_full}',
    'dental office {city}',
    'teeth cleaning {city}',
    'dental crowns {city}',
    'emergency dentist {city} medicaid',
]


def state_full_name(state):
    if not state:
        return None
    return STATE_MAP.get(state.strip().upper())


def generate_keywords_for_location(city, state=None, limit=MAX_GENERATED_KEYWORDS):
    """
    Fill the templates for `city` / `state`.

    Templates that need a state are skipped when none is given; an unknown
    state abbreviation stands in for its own full name.
    """
    city = (city or '').strip().lower()
    if not city:
        return []
    state_abbrev = (state or '').strip().lower()
    state_full = state_full_name(state) or state_abbrev

    keywords = []
    for template in KEYWORD_TEMPLATES:
        if not state_abbrev and ('{state}' in template or '{state_full}' in template):
            continue
        keyword = template.format(city=city, state=state_abbrev, state_full=state_full)
        if keyword not in keywords:
            keywords.append(keyword)
        if len(keywords) >= limit:
            break
    return keywords


def format_location_name(location):
    """
    "Austin, TX" -> "Austin,Texas,United States" for location-scoped rank
    lookups. Returns None unless both city and state are present.
    """
    if not location:
        return None
    parts = [p.strip() for p in location.split(',')]
    if len(parts) < 2 or not parts[0] or not parts[1]:
        return None
    state = STATE_MAP.get(parts[1].upper())
    state = state.title() if state else parts[1]
    return f"{parts[0]},{state},United States"
