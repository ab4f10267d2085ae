import re


_DURATION_UNITS = (
    ("day", 86_400_000),
    ("hour", 3_600_000),
    ("minute", 60_000),
    ("second", 1_000),
)


def duration_to_string(duration_ms: int) -> str:
    """Render a millisecond duration as e.g. ``1 minute 30 seconds``.

    Durations below one second are shown in milliseconds.

    Args:
        duration_ms: Duration in milliseconds.

    Returns:
        Human-readable duration.
    """
    if duration_ms < 1000:
        return f"{max(0, int(duration_ms))} milliseconds"

    parts = []
    remaining = int(duration_ms)
    for unit, size in _DURATION_UNITS:
        count, remaining = divmod(remaining, size)
        if count:
            parts.append(f"{count} {unit}{'s' if count != 1 else ''}")
    return " ".join(parts)


def render_usage(template: str, prefix: str, command_name: str) -> str:
    """Replace every ``{command}`` placeholder with prefix plus command name."""
    return template.replace("{command}", f"{prefix}{command_name}")


_SNOWFLAKE_MENTION = re.compile(r"^<(?:@[!&]?|#)(\d{1,20})>$|^(\d{1,20})$")


def extract_snowflake(text: str) -> int | None:
    """Id from a user, role or channel mention, or from a bare id. None otherwise."""
    match = _SNOWFLAKE_MENTION.match(text.strip())
    if match is None:
        return None
    return int(match.group(1) or match.group(2))
