"""Error pattern analysis.

Normalizes error messages into canonical patterns so that the same failure
in different files or lines groups together.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any

import buildmon.records as records

UNKNOWN_PATTERN = "Unknown error pattern"
MAX_EXAMPLES = 3

# Applied in order; later rules see the output of earlier ones.
_NORMALIZERS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r":\d+:\d+"), ":XX:XX"),  # line:column
    (re.compile(r"/[^/\s]+\.(ts|tsx|js|jsx)"), r"/FILE.\1"),  # source paths
    (re.compile(r"\d+"), "N"),
    (re.compile(r"['\"`][^'\"`]*['\"`]"), '"STRING"'),
]


def extract_error_pattern(error: Any, _unwrap: bool = True) -> str:
    """Reduce an error to its canonical pattern.

    Strings are normalized directly. Mappings and objects carrying a
    ``message`` are unwrapped once. Anything else is an unknown pattern.
    """
    if isinstance(error, str):
        pattern = error
        for regex, replacement in _NORMALIZERS:
            pattern = regex.sub(replacement, pattern)
        return pattern

    if _unwrap:
        if isinstance(error, Mapping):
            message = error.get("message")
        elif isinstance(error, BaseException):
            message = str(error)
        else:
            message = getattr(error, "message", None)
        if message:
            return extract_error_pattern(message, _unwrap=False)

    return UNKNOWN_PATTERN


def analyze_error_patterns(
    history: records.BuildHistory,
    now: datetime | None = None,
    window: timedelta = timedelta(hours=24),
) -> list[records.ErrorPattern]:
    """Group the errors of every failed build by pattern.

    Patterns are rebuilt from the full history on each call, and first/last
    seen are stamped with the analysis time, so every pattern present in the
    history counts as new within ``window``.

    Args:
        history: Build history to analyze.
        now: Analysis time. Defaults to UTC now.
        window: How recent ``first_seen`` must be for a pattern to be new.

    Returns:
        One ErrorPattern per distinct pattern, in first-occurrence order.
    """
    now = now or records.utc_now()

    groups: dict[str, dict[str, Any]] = {}
    for build in history.builds:
        if build.success:
            continue
        for error in build.errors:
            pattern = extract_error_pattern(error)
            group = groups.setdefault(
                pattern,
                {"count": 0, "first_seen": None, "last_seen": None, "examples": []},
            )
            group["count"] += 1
            group["last_seen"] = now
            if group["first_seen"] is None:
                group["first_seen"] = now
            if len(group["examples"]) < MAX_EXAMPLES:
                group["examples"].append(error)

    cutoff = now - window
    return [
        records.ErrorPattern(
            pattern=pattern,
            count=group["count"],
            first_seen=group["first_seen"],
            last_seen=group["last_seen"],
            examples=group["examples"],
            is_new=group["first_seen"] > cutoff,
        )
        for pattern, group in groups.items()
    ]
