import pytest

from bulwark.util.format_utils import duration_to_string, extract_snowflake, render_usage


@pytest.mark.parametrize(
    "duration_ms, expected",
    [
        (0, "0 milliseconds"),
        (250, "250 milliseconds"),
        (1_000, "1 second"),
        (20_000, "20 seconds"),
        (90_000, "1 minute 30 seconds"),
        (86_400_000 + 3_600_000, "1 day 1 hour"),
    ],
)
def test_duration_to_string(duration_ms, expected):
    assert duration_to_string(duration_ms) == expected


def test_render_usage_replaces_every_placeholder():
    assert render_usage("{command} add | {command} rem", "?!", "mod") == "?!mod add | ?!mod rem"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("<@123>", 123),
        ("<@!123>", 123),
        ("<@&456>", 456),
        ("<#789>", 789),
        ("  42 ", 42),
        ("@everyone", None),
        ("<@abc>", None),
        ("", None),
    ],
)
def test_extract_snowflake(text, expected):
    assert extract_snowflake(text) == expected
