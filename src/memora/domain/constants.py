"""Centralized constants for memora.

All magic numbers and defaults live here so every layer
imports from a single source of truth.
"""

# ---------- FSRS ----------
FSRS_DECAY = -0.5
FSRS_FACTOR = 19.0 / 81.0
FSRS_DEFAULT_WEIGHTS = (
    0.5701, 1.4436, 4.1386, 10.9355,  # w[0]-w[3]  initial stabilities
    5.1443, 1.2006, 0.8627, 0.0362,   # w[4]-w[7]  difficulty params
    1.629, 0.1342, 1.0166,            # w[8]-w[10] stability recall params
    2.1174, 0.0839, 0.3204, 1.4676,   # w[11]-w[14] stability lapse params
    0.219, 2.8237,                    # w[15]-w[16] hard penalty / easy bonus
)
FSRS_WEIGHT_COUNT = 17
FSRS_DEFAULT_RETENTION = 0.9
MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 10.0

# Next review lands in [1 - JITTER, 1 + JITTER] of the optimal interval
JITTER = 0.1

# ---------- Deck ----------
LOAD_BALANCE_MIN_STABILITY = 2.0
DEFAULT_RANDOM_REVIEW_COUNT = 20
DEFAULT_RESCHEDULE_FRACTION = 0.1
PARSING_VERSION = 3

# ---------- Cloze ----------
CLOZE_PLACEHOLDER = "{...}"
CLOZE_CONTEXT_ELLIPSIS = "..."
DEFAULT_SURROUNDING_LINES = 2
LINE_CARD_TYPE = "line"

# ---------- Calendar ----------
DAY_ROLLOVER_HOURS = 4
MIN_DAY = -(2**31)
MAX_DAY = 2**31 - 1

# ---------- Files ----------
DEFAULT_DECK_FILE = "memodeck.json"
DEFAULT_CACHE_FILE = ".memocache.json"
MARKDOWN_SUFFIX = ".md"
LOG_FILE_NAME = "memora.log"
