import json
import math
import hashlib
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union


# =========================
# Datetime helpers
# =========================
def to_naive_utc(value: datetime) -> datetime:
    """Stored datetimes are naive UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse ISO-8601 (``Z`` suffix allowed) into naive UTC. Raises ValueError."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return to_naive_utc(datetime.fromisoformat(text))


# =========================
# JSON text columns
# =========================
def load_json_list(raw: Optional[str]) -> List[Any]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return []
    return value if isinstance(value, list) else []


def dump_json_list(values: Optional[List[Any]]) -> str:
    return json.dumps(list(values or []))


# =========================
# Pagination
# =========================
def pagination_meta(page: int, limit: int, total: int) -> Dict[str, Any]:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "currentPage": page,
        "totalPages": total_pages,
        "total": total,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
    }


def hash_identifier(value: str) -> str:
    return hashlib.sha256(value.strip().lower().encode()).hexdigest()
