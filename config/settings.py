"""
Configuration settings for the Calendar Intelligence engine
"""
import os
from typing import Dict, List

class Config:
    # Calendar Configuration
    CALENDAR_TOKENS_PATH = os.getenv("CALENDAR_TOKENS_PATH", os.path.join(os.getcwd(), "tokens"))
    GOOGLE_API_PAGE_SIZE = 250  # Google caps events().list at 2500, 250 is its default
    MAX_EVENTS_PER_CALENDAR = 500
    MAX_FETCH_WORKERS = 5

    # Logging
    LOG_LEVEL = os.getenv("CALENDAR_INTEL_LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("CALENDAR_INTEL_LOG_FILE")

    # Working hours bound the productivity scan
    WORKING_HOURS_ENABLED = True
    WORKING_HOURS_START = "09:00"
    WORKING_HOURS_END = "17:00"
    WORKING_DAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]

    # Pattern learning
    ANALYSIS_WINDOW_DAYS = 90
    FOCUS_SCORE_CUTOFF = 50.0
    FOCUS_BLOCK_HOURS = 2
    FOCUS_RECOMMENDATION_THRESHOLD = 70.0
    HIGH_PRIORITY_FOCUS_SCORE = 85.0
    DECLINE_RATE_THRESHOLD = 0.5
    OVERRUN_MINUTES_THRESHOLD = 5
    DEFAULT_TIMEZONE = "UTC"
    CROSS_TIMEZONE_TIMES = ["14:00", "15:00", "16:00"]

    # Scoring
    ALTERNATIVE_HOURS_START = 9
    ALTERNATIVE_HOURS_END = 17  # inclusive
    ALTERNATIVE_SCORE_THRESHOLD = 70

    # Conflict detection
    CONFLICT_SEARCH_PADDING_HOURS = 2
    NEAR_MISS_GAP_MINUTES = 15
    OVERLOAD_MEETING_THRESHOLD = 6
    SOFT_CONFLICT_PENALTY = 10
    DEFAULT_ALTERNATIVE_SCORE = 70
    MIN_ALTERNATIVE_SCORE = 50
    MAX_ALTERNATIVES = 3
    LATER_SAME_DAY_OFFSETS_HOURS = [1, 2, 3, 4]
    DEFAULT_BEST_HOUR = 14

    # Focus time
    ADAPTIVE_LOOKAHEAD_DAYS = 14
    FOCUS_EVENT_TITLE = "Focus Time"
    FOCUS_DECLINE_MESSAGE = "This time is blocked for focus work. Alternative times are available."
    HIGH_DENSITY_THRESHOLD = 5.0

    @classmethod
    def get_working_hours(cls):
        """Get the working-hours window used by the productivity scan"""
        # Imported here to keep config free of model imports at module load
        from src.analytics.models import WorkingHours

        return WorkingHours(
            enabled=cls.WORKING_HOURS_ENABLED,
            start=cls.WORKING_HOURS_START,
            end=cls.WORKING_HOURS_END
        )

    @classmethod
    def get_logging_config(cls) -> Dict[str, str]:
        """Get logging configuration"""
        return {
            "log_level": cls.LOG_LEVEL,
            "log_file": cls.LOG_FILE
        }

    @classmethod
    def get_token_path(cls, identity: str) -> str:
        """Get token file path for a calendar identity"""
        username = identity.split("@")[0]
        token_file = f"{username}.token"
        token_path = os.path.join(cls.CALENDAR_TOKENS_PATH, token_file)

        if not os.path.exists(token_path):
            raise FileNotFoundError(f"Token file not found for {identity}: {token_path}")

        return token_path

    @classmethod
    def available_identities(cls) -> List[str]:
        """List identities that have a token file in the tokens directory"""
        if not os.path.isdir(cls.CALENDAR_TOKENS_PATH):
            return []
        return sorted(
            name[:-len(".token")] for name in os.listdir(cls.CALENDAR_TOKENS_PATH)
            if name.endswith(".token")
        )
