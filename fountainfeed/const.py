DOMAIN = "fountainfeed"
VERSION = "0.3.0"

# Remote open-data endpoints (Madrid drinking fountains)
API_URL = "https://ciudadesabiertas.madrid.es/dynamicAPI/API/query/mint_fuentes.json"
SECONDARY_API_URL = "https://ciudadesabiertas.madrid.es/dynamicAPI/API/query/min_fuentes_can.json"
SECONDARY_API_PARAMS: dict[str, int] = {"pageSize": 4500, "page": 1}

REQUEST_TIMEOUT = 15         # seconds per request
REQUEST_ATTEMPTS = 1         # the loader owns retry policy, the fetcher never retries

# Progressive loading
TOTAL_PAGES = 23             # page count assumed when the API does not report one
HEAD_PAGES = 3               # pages fetched up front for immediate display
BATCH_SIZE = 2               # pages per background batch
BATCH_DELAY = 0.5            # pause after a successful batch (rate limit towards the API)
BATCH_FAILURE_DELAY = 1.0    # longer pause after a failed batch

# Persistent cache
CACHE_NAMESPACE = DOMAIN
CACHE_KEY = "watter_app_fountains_cache"
CACHE_VERSION = "1.0.0"
CACHE_TTL = 30 * 24 * 60 * 60  # 30 days, in seconds

# Consumer side
CHUNK_THRESHOLD = 5000       # collections this large are indexed in chunks
CHUNK_SIZE = 500
FILTER_DEBOUNCE = 0.15       # seconds, text input only
PAGE_SIZE = 50               # items per virtual page
LOAD_MORE_DELAY = 0.1        # seconds spent "loading" the next page
SCROLL_THRESHOLD = 100       # pixels from the bottom that trigger load_more()

# Usage categories (normalized)
USAGE_PEOPLE = "people"
USAGE_PEOPLE_AND_PETS = "people_and_pets"
USAGE_CATEGORIES = (USAGE_PEOPLE, USAGE_PEOPLE_AND_PETS)

# Raw usage spellings that mean "people and pets" once separators are collapsed
PEOPLE_AND_PETS_TAGS = ("PERSONAS Y MASCOTAS", "PEOPLE AND PETS")

# Status categories
STATUS_WORKING = "working"
STATUS_OUT_OF_SERVICE = "out_of_service"
STATUS_MAINTENANCE = "maintenance"
STATUS_UNKNOWN = "unknown"

# Maps a discrete filter selector name → Record attribute it matches against.
# "usage" is special-cased: it compares the normalized usage category.
FILTER_FIELDS: dict[str, str] = {
    "district":     "district",
    "neighborhood": "neighborhood",
    "status":       "status",
    "usage":        "usage",
}
