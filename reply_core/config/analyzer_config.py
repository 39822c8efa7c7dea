# config/analyzer_config.py

CORE_CONFIG = {
    "analyzer": {
        "review": {
            "max_questions": 3,
            "max_action_items": 3,
            "min_confidence": 0.4
        },
        "sentiment": {
            "word_window": 100
        },
        "dates": {
            "day_first": True,
            # Dates before today move forward one year
            "roll_past_dates": True
        }
    },
    "composer": {
        "meeting_days": {
            "short": 1,
            "medium": 2,
            "long": 3
        },
        "timeslots": ["9:00 AM", "11:00 AM", "1:00 PM", "3:00 PM", "4:30 PM"],
        "penalties": {
            "many_questions": 0.9,
            "many_action_items": 0.9,
            "many_deadlines": 0.9,
            "high_urgency": 0.8,
            "negative_sentiment": 0.7,
            "unreferenced_content": 0.8
        }
    },
    "cache": {
        "max_entries": 100,
        "similarity_threshold": 0.8,
        "min_fuzzy_length": 50,
        "classes": {
            "analysis": {"ttl_seconds": 60 * 60, "fuzzy_match": True},
            "smart_replies": {"ttl_seconds": 30 * 60, "fuzzy_match": True},
            "full_replies": {"ttl_seconds": 30 * 60, "fuzzy_match": False}
        }
    },
    "resilience": {
        "max_retries": 2,            # 2 retries = 3 total attempts
        "backoff_base_seconds": 0.5,
        "fallback_threshold": 3,
        "error_retention_seconds": 24 * 60 * 60,
        "storage_key": "error_tracking"
    },
    "quality_log": {
        "max_entries": 100,
        "retention_days": 30,
        "attention_confidence": 0.7,
        "storage_key": "quality_log"
    }
}


def get_section(name: str) -> dict:
    """Return one configuration section, or an empty dict if unknown."""
    return CORE_CONFIG.get(name, {})
