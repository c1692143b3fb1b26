import re
from typing import Dict, Any, Optional, Tuple
from urllib.parse import urlparse

BARE_URL_PATTERN = re.compile(r"^https?://", re.IGNORECASE)

SORT_COLUMNS = ("created_at", "view_count")
SORT_ORDERS = ("asc", "desc")


def looks_like_bare_url(text: Optional[str]) -> bool:
    """True when text (trimmed) starts with an http(s) scheme.

    Used wherever user-facing text is produced: models occasionally echo the
    input link back as their "summary".
    """
    if not text:
        return False
    return BARE_URL_PATTERN.match(text.strip()) is not None


class TripInputValidator:
    """Validator for trip and URL inputs"""

    @staticmethod
    def is_valid_url(text: Optional[str]) -> bool:
        """Absolute http/https URL with a host"""
        if not text or not text.strip():
            return False
        try:
            parsed = urlparse(text.strip())
            # Raises ValueError for a non-numeric or out-of-range port
            parsed.port
        except ValueError:
            return False
        return parsed.scheme in ("http", "https") and bool(parsed.netloc)

    @staticmethod
    def validate_trip_description(description: Optional[str]) -> Dict[str, Any]:
        """Validate a trip description before any network call"""
        errors = []

        if description is None or not description.strip():
            errors.append("Trip description is required")

        return {
            'valid': len(errors) == 0,
            'errors': errors
        }

    @staticmethod
    def normalize_sort(sort_by: Optional[str], sort_order: Optional[str]) -> Tuple[str, str]:
        """Unknown sort keys fall back to created_at, unknown orders to desc"""
        column = sort_by if sort_by in SORT_COLUMNS else "created_at"
        order = sort_order.lower() if sort_order and sort_order.lower() in SORT_ORDERS else "desc"
        return column, order
