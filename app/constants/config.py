"""
Application configuration constants.
Centralized tuning for fetch timeouts, verification caps, scoring weights and input limits.
"""

# ============================================================================
# FETCH GATE
# ============================================================================

# Cheap existence probe (HEAD)
PROBE_TIMEOUT_SECONDS = 5.0

# Full content retrieval (GET)
CONTENT_TIMEOUT_SECONDS = 8.0

# Snapshot index lookup
ARCHIVE_TIMEOUT_SECONDS = 5.0

# Generative model / OCR exchanges
UPSTREAM_TIMEOUT_SECONDS = 60.0

# Bodies are read up to this many bytes; enough for <head> metadata and a date
MAX_BODY_BYTES = 2 * 1024 * 1024

FETCH_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; TruthGazetteVerifier/1.0)",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

# ============================================================================
# SOURCE VERIFICATION
# ============================================================================

# Candidates considered per request
VERIFY_MAX_CANDIDATES = 10

# Ranked sources returned to the client
DISPLAY_MAX_SOURCES = 5

# Default fan-out when settings do not override it
VERIFY_DEFAULT_CONCURRENCY = 4

# Wall-clock budget for a whole verification batch; stragglers are cancelled
VERIFY_BATCH_TIMEOUT_SECONDS = 30.0

# Model marker for "no reliable URL found"
SOURCE_UNAVAILABLE_MARKER = "SOURCE_UNAVAILABLE"

# Only the first N chars of a claimed excerpt are searched for on the page
EXCERPT_MATCH_CHARS = 120

# ============================================================================
# URL SANITY HEURISTICS
# ============================================================================

HALLUCINATION_MAX_PATH_SEGMENTS = 15
HALLUCINATION_MIN_SEGMENT_LENGTH = 3
HALLUCINATION_MAX_NUMERIC_RUN = 12

# Platforms that legitimately carry long numeric IDs in their URLs
ID_BEARING_DOMAINS = {
    "youtube.com",
    "youtu.be",
    "twitter.com",
    "x.com",
    "facebook.com",
    "instagram.com",
    "tiktok.com",
    "reddit.com",
    "linkedin.com",
    "vimeo.com",
    "t.me",
    "threads.net",
}

# ============================================================================
# PROXY URL RESOLUTION
# ============================================================================

# Hosts/paths used by search-grounding providers for opaque redirect URLs
PROXY_URL_MARKERS = (
    "vertexaisearch.cloud.google.com",
    "grounding-api-redirect",
    "google.com/url",
)

# Query parameters that commonly carry the real destination
PROXY_QUERY_PARAMS = ("u", "url", "q", "r", "redirect", "target")

# ============================================================================
# CONFIDENCE SCORING
# ============================================================================

CONFIDENCE_BASE = {
    "REAL": 75,
    "FAKE": 72,
    "UNCERTAIN": 65,
}

CONFIDENCE_ONE_VERIFIED_BONUS = 5
CONFIDENCE_THREE_VERIFIED_BONUS = 8
CONFIDENCE_TRUSTED_SOURCE_BONUS = 8
CONFIDENCE_UNVERIFIED_PENALTY = 5
CONFIDENCE_UNVERIFIED_PENALTY_CAP = 10
CONFIDENCE_GROUNDING_BONUS = 4
CONFIDENCE_DATE_MISMATCH_PENALTY = 4

CONFIDENCE_MIN = 60
CONFIDENCE_MAX = 95

# Confidence reported for a synthesized fallback when the model output is unparseable
FALLBACK_MODEL_CONFIDENCE = 65

# ============================================================================
# RATE LIMIT / QUOTA / CACHE
# ============================================================================

RATE_LIMIT_WINDOW_SECONDS = 60

# Test override header bounds (exclusive upper bound)
TEST_RATE_LIMIT_MAX = 1000

# Daily quota keys expire a little after the day they count
QUOTA_KEY_TTL_SECONDS = 60 * 60 * 25

CACHE_KEY_PREFIX = "investigate:"

# Leading characters of the image data URI mixed into the fingerprint
IMAGE_FINGERPRINT_CHARS = 1024

# ============================================================================
# INPUT LIMITS
# ============================================================================

MAX_TEXT_CHARS = 3000
MAX_URL_CHARS = 2000
MAX_IMAGE_CHARS = 8 * 1024 * 1024
MAX_OCR_PROMPT_CHARS = 3000
