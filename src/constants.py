"""Constants and defaults for the sitedetour core."""

__version__ = "1.0"

CATEGORIES = ("social", "news", "video", "shopping", "work", "learning")

LIST_FIELDS = ("trigger_sites", "destinations", "whitelist")
CATEGORY_FIELDS = {
    "trigger_sites": "trigger_categories",
    "destinations": "destination_categories",
}

DEFAULT_SETTINGS = {
    "trigger_sites": [],
    "destinations": [],
    "whitelist": [],
    "snooze_until": None,
    "snooze_block_schedules": [],
    "snoozed_sites": {},
    "trigger_categories": {},
    "destination_categories": {},
    "redirect_stats": {},
    "focus_mode": False,
    "redirect_delay": 0,
}

# tuning
DEFAULT_SNOOZE_MINUTES = 15
MAX_REDIRECT_DELAY = 30.0
STATS_WRITE_INTERVAL = 1.0
TASK_CLEANUP_INTERVAL = 60.0
MS_PER_MINUTE = 60 * 1000

# decision outcomes
OUTCOME_REDIRECT = "redirect"
OUTCOME_SUBFRAME = "subframe"
OUTCOME_LOOP_GUARD = "loop_guard"
OUTCOME_SNOOZED = "snoozed"
OUTCOME_NO_MATCH = "no_match"
OUTCOME_WHITELISTED = "whitelisted"
OUTCOME_SITE_SNOOZED = "site_snoozed"
OUTCOME_NO_DESTINATION = "no_destination"
OUTCOME_ERROR = "error"
