"""
Central constants for OneiroMetrics.

Update callout names, metric defaults and scrape limits here.
"""

# Callout names as written in journal documents
JOURNAL_CALLOUT = "journal-entry"
DIARY_CALLOUT = "dream-diary"
METRICS_CALLOUT = "dream-metrics"

# Placeholder meaning "not recorded" in a metrics callout
NOT_RECORDED = "—"

UNTITLED_DREAM = "Untitled Dream"

# Synthetic metric always added to each entry
WORDS_METRIC = "Words"

# Derived content metrics (off unless metrics.derived_metrics is set)
READING_TIME_METRIC = "Reading Time"
SENTIMENT_METRIC = "Sentiment"
LENGTH_CATEGORY_METRIC = "Length Category"
WORDS_PER_MINUTE = 200

# Batch orchestration
DEFAULT_BATCH_SIZE = 5
DEFAULT_MAX_FILES = 200

# Selection modes (legacy names map onto the current ones)
SELECTION_MODES = ["notes", "folder"]
LEGACY_SELECTION_MODES = {"manual": "notes", "automatic": "folder"}

# Conflict resolution strategies
CONFLICT_STRATEGIES = ["suggested", "frontmatter", "callout", "newest", "manual"]
UNIMPLEMENTED_STRATEGIES = ["newest", "manual"]
DEFAULT_CONFLICT_STRATEGY = "suggested"

# Severity thresholds (relative difference of two numeric values)
HIGH_SEVERITY_THRESHOLD = 0.5
MEDIUM_SEVERITY_THRESHOLD = 0.2

DEFAULT_METRICS = [
    {"name": "Words", "min_value": 0, "max_value": 1000, "enabled": True,
     "category": "content", "description": "Number of words in the dream entry"},
    {"name": "Reading Time", "min_value": 0, "max_value": 60, "enabled": True,
     "category": "content", "description": "Estimated reading time in minutes"},
    {"name": "Sentiment", "min_value": -1, "max_value": 1, "enabled": False,
     "category": "content", "description": "Word-list sentiment of the dream text"},
    {"name": "Length Category", "min_value": 1, "max_value": 4, "enabled": False,
     "category": "content", "description": "Entry length band from short (1) to very long (4)"},
    {"name": "Sensory Detail", "min_value": 1, "max_value": 5, "enabled": True,
     "category": "dream", "description": "Level of sensory information recalled from the dream"},
    {"name": "Emotional Recall", "min_value": 1, "max_value": 5, "enabled": True,
     "category": "dream", "description": "Level of emotional detail recalled from the dream"},
    {"name": "Lost Segments", "min_value": 0, "max_value": 5, "enabled": True,
     "category": "dream", "description": "Number of dream segments that feel missing or incomplete"},
    {"name": "Descriptiveness", "min_value": 1, "max_value": 5, "enabled": True,
     "category": "dream", "description": "Level of detail in the dream description"},
    {"name": "Confidence Score", "min_value": 1, "max_value": 5, "enabled": True,
     "category": "dream", "description": "Confidence level in the completeness of dream recall"},
    {"name": "Characters Role", "min_value": 1, "max_value": 5, "enabled": True,
     "category": "character", "description": "Significance of familiar characters in the dream narrative"},
    {"name": "Characters Count", "min_value": 0, "max_value": 20, "enabled": False,
     "category": "character", "description": "Total number of characters in the dream"},
    {"name": "Characters List", "min_value": 0, "max_value": 0, "enabled": False,
     "category": "character", "value_kind": "list",
     "description": "List of characters that appeared in the dream"},
    {"name": "Dream Theme", "min_value": 0, "max_value": 0, "enabled": False,
     "category": "theme", "value_kind": "list",
     "description": "Main themes or motifs in the dream"},
    {"name": "Lucidity Level", "min_value": 1, "max_value": 5, "enabled": False,
     "category": "dream", "description": "Degree of awareness that you were dreaming while in the dream"},
    {"name": "Dream Coherence", "min_value": 1, "max_value": 5, "enabled": False,
     "category": "dream", "description": "How logical and consistent the dream narrative was"},
    {"name": "Ease of Recall", "min_value": 1, "max_value": 5, "enabled": False,
     "category": "dream", "description": "How easily you could remember the dream upon waking"},
]
