"""
Constants for technical SEO scoring.
Severity tiers, per-check metadata, thematic weights, and thresholds.
Check names are the crawl provider's snake_case keys.
"""

# =============================================================================
# CHECK METADATA
# =============================================================================

# check -> (human label, fails_when_true)
CHECK_METADATA = {
    # URL / transport
    'is_www': ('Uses WWW Subdomain', False),
    'is_https': ('HTTPS Enabled', False),
    'is_http': ('Using HTTP (Insecure)', True),
    'is_broken': ('Page is Broken', True),
    'is_redirect': ('Page is a Redirect', True),
    'is_4xx_code': ('4xx Error Code', True),
    'is_5xx_code': ('5xx Server Error', True),
    'seo_friendly_url': ('SEO-Friendly URL', False),
    'seo_friendly_url_characters_check': ('URL Characters Valid', False),
    'seo_friendly_url_dynamic_check': ('No Dynamic URL Parameters', False),
    'seo_friendly_url_keywords_check': ('URL Contains Keywords', False),
    'seo_friendly_url_relative_length_check': ('URL Length Acceptable', False),

    # Document structure
    'has_html_doctype': ('Has HTML Doctype', False),
    'no_doctype': ('Missing Doctype', True),
    'frame': ('Uses Frames (Deprecated)', True),
    'flash': ('Uses Flash (Deprecated)', True),
    'deprecated_html_tags': ('Uses Deprecated HTML Tags', True),
    'has_render_blocking_resources': ('Has Render-Blocking Resources', True),
    'has_meta_refresh_redirect': ('Uses Meta Refresh Redirect', True),
    'duplicate_meta_tags': ('Duplicate Meta Tags', True),
    'duplicate_title_tag': ('Duplicate Title Tag', True),

    # Meta
    'canonical': ('Has Canonical Tag', False),
    'no_encoding_meta_tag': ('Missing Charset Declaration', True),
    'meta_charset_consistency': ('Charset Consistency', False),
    'has_micromarkup': ('Has Schema Markup', False),
    'has_micromarkup_errors': ('Schema Markup Errors', True),

    # Title
    'title_too_short': ('Title Too Short', True),
    'title_too_long': ('Title Too Long', True),
    'no_title': ('Missing Page Title', True),
    'has_meta_title': ('Has Meta Title', False),
    'duplicate_title': ('Duplicate Title', True),
    'irrelevant_title': ('Potentially Irrelevant Title', True),

    # Description
    'no_description': ('Missing Meta Description', True),
    'irrelevant_description': ('Potentially Irrelevant Description', True),
    'duplicate_description': ('Duplicate Description', True),

    # Content
    'low_content_rate': ('Low Content Ratio', True),
    'high_content_rate': ('Unusually High Content Ratio', True),
    'low_character_count': ('Low Character Count', True),
    'high_character_count': ('Very High Character Count', True),
    'low_readability_rate': ('Poor Readability', True),
    'duplicate_content': ('Duplicate Content', True),
    'lorem_ipsum': ('Placeholder Text Detected', True),
    'has_misspelling': ('Spelling Errors', True),
    'no_h1_tag': ('Missing H1 Heading', True),
    'irrelevant_meta_keywords': ('Irrelevant Meta Keywords', True),

    # Images
    'no_image_alt': ('Images Missing Alt Text', True),
    'no_image_title': ('Images Missing Title', True),

    # Performance
    'high_loading_time': ('Slow Page Load', True),
    'high_waiting_time': ('Slow Server Response', True),
    'no_content_encoding': ('No Compression', True),
    'small_page_size': ('Very Small Page Size', True),
    'large_page_size': ('Large Page Size', True),
    'size_greater_than_3mb': ('Page Size Exceeds 3MB', True),

    # Links and resources
    'https_to_http_links': ('Mixed Content (HTTPS/HTTP)', True),
    'broken_resources': ('Broken Resources', True),
    'broken_links': ('Broken Links', True),
    'no_favicon': ('Missing Favicon', True),
}

# =============================================================================
# SEVERITY TIERS
# =============================================================================

# A check missing from every tier is not reported at all.
ISSUE_SEVERITY_CONFIG = {
    'errors': [
        'no_title',
        'no_description',
        'no_h1_tag',
        'is_broken',
        'is_4xx_code',
        'is_5xx_code',
        'broken_links',
        'broken_resources',
        'https_to_http_links',
    ],
    'warnings': [
        'title_too_long',
        'title_too_short',
        'duplicate_title',
        'duplicate_description',
        'no_image_alt',
        'low_content_rate',
        'high_loading_time',
        'has_render_blocking_resources',
        'no_favicon',
        'low_readability_rate',
        'is_http',
        'high_waiting_time',
        'large_page_size',
        'size_greater_than_3mb',
        'duplicate_content',
    ],
    'notices': [
        'no_encoding_meta_tag',
        'deprecated_html_tags',
        'no_image_title',
        'irrelevant_title',
        'irrelevant_description',
        'has_misspelling',
        'lorem_ipsum',
        'frame',
        'flash',
        'no_doctype',
        'small_page_size',
        'irrelevant_meta_keywords',
        'meta_charset_consistency',
        'duplicate_meta_tags',
        'duplicate_title_tag',
    ],
}

# Tier name -> singular severity label used on issue rows
SEVERITY_LABELS = {
    'errors': 'error',
    'warnings': 'warning',
    'notices': 'notice',
}

# =============================================================================
# THEMATIC SCORE WEIGHTS (each theme sums to 100)
# =============================================================================

THEMATIC_SCORE_WEIGHTS = {
    'crawlability': {
        'not_broken': 25,
        'no_4xx_code': 20,
        'no_5xx_code': 20,
        'not_redirect': 10,
        'has_canonical': 15,
        'no_meta_refresh': 10,
    },
    'https': {
        'is_https': 50,
        'no_mixed_content': 30,
        'https_verified': 20,
    },
    'core_web_vitals': {
        'lcp': 40,
        'fid': 30,
        'cls': 30,
    },
    'performance': {
        'no_high_load_time': 30,
        'no_high_wait_time': 20,
        'no_render_blocking': 20,
        'has_compression': 15,
        'under_size_limit': 15,
    },
    'internal_linking': {
        'no_broken_links': 40,
        'has_internal_links': 30,
        'good_external_ratio': 30,
    },
    'markup': {
        'has_doctype': 15,
        'no_deprecated_tags': 15,
        'no_frames': 10,
        'no_flash': 10,
        'has_schema': 25,
        'no_schema_errors': 15,
    },
}

# =============================================================================
# THRESHOLDS
# =============================================================================

# Core Web Vitals (LCP/FID in milliseconds, CLS unitless)
CWV_THRESHOLDS = {
    'lcp': {'good': 2500, 'moderate': 4000},
    'fid': {'good': 100, 'moderate': 300},
    'cls': {'good': 0.1, 'moderate': 0.25},
}

LINK_THRESHOLDS = {
    'min_internal_links': 3,
    'max_external_ratio': 0.8,
}

# Score -> status bands
SCORE_STATUS_GOOD = 80
SCORE_STATUS_MODERATE = 50
