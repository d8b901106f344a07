"""
Normalizes raw model output into a single executable statement.
"""

import re


# Leading fence with an optional language tag. Known SQL tags are dropped even
# when the statement follows on the same line; any other tag needs a newline.
OPENING_FENCE = re.compile(
    r"^\s*```(?:(?:postgresql|postgres|pgsql|sql)\b|\w+[ \t\r]*(?=\n))?\s*",
    re.IGNORECASE,
)
CLOSING_FENCE = re.compile(r"\s*```\s*$")

# Full-line parameter hints such as "-- param: $1 = patient id"
PARAM_HINT = re.compile(r"^\s*--\s*param:.*$", re.IGNORECASE | re.MULTILINE)

# Anchored at the end only; terminators inside the statement are untouched
TRAILING_TERMINATORS = re.compile(r"[;\s]+$")


def _clean_once(text: str) -> str:
    out = OPENING_FENCE.sub("", text, count=1)
    out = CLOSING_FENCE.sub("", out, count=1)
    out = PARAM_HINT.sub("", out)
    out = out.strip()
    out = TRAILING_TERMINATORS.sub("", out)
    return out.strip()


def clean_sql(raw: str) -> str:
    """
    Strip fences, parameter-hint comments and trailing semicolons.

    Each step only removes text, so repeating until nothing changes
    terminates and makes the result idempotent:
    ``clean_sql(clean_sql(x)) == clean_sql(x)``.
    """
    out = raw or ""
    while True:
        cleaned = _clean_once(out)
        if cleaned == out:
            return cleaned
        out = cleaned
