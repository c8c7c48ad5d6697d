import re
from datetime import datetime, timezone
from typing import List, Optional, Tuple

UNKNOWN_UPTIME: str = "unknown uptime"

# Docker reports nanosecond precision; datetime only holds microseconds.
_FRACTION_PATTERN: re.Pattern[str] = re.compile(r"\.(\d+)")
_MAX_UNITS: int = 3


def format_duration(milliseconds: float) -> str:
    """
    Render a millisecond count as a compact human string.

    Starts at the largest nonzero unit and keeps the following units, at
    most three of them: 90s -> "1m 30s", 25h -> "1d 1h 0m", 0 -> "0s".
    """
    total_seconds: int = max(0, int(milliseconds // 1000))
    days, remainder = divmod(total_seconds, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, seconds = divmod(remainder, 60)

    units: List[Tuple[int, str]] = [
        (days, "d"),
        (hours, "h"),
        (minutes, "m"),
        (seconds, "s"),
    ]
    for index, (value, _suffix) in enumerate(units):
        if value:
            selected = units[index:index + _MAX_UNITS]
            return " ".join(f"{amount}{suffix}" for amount, suffix in selected)
    return "0s"


def parse_docker_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    normalized: str = value.strip().replace("Z", "+00:00")
    normalized = _FRACTION_PATTERN.sub(
        lambda match: "." + match.group(1)[:6].ljust(6, "0"),
        normalized,
        count=1,
    )
    try:
        parsed: datetime = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    if parsed.year <= 1:
        # Zero time: the container has never been started.
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_uptime(
    started_at: Optional[datetime],
    now: Optional[datetime] = None,
) -> str:
    if started_at is None:
        return UNKNOWN_UPTIME
    current_time: datetime = now or datetime.now(timezone.utc)
    elapsed_ms: float = (current_time - started_at).total_seconds() * 1000
    return format_duration(elapsed_ms)
