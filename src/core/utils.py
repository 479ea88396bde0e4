import re


def collapse(s: str) -> str:
    """
    Collapses runs of whitespace into one space and trims both ends.
    """
    return re.sub(r'\s+', ' ', s).strip()


def split_tags(raw: str | None) -> frozenset[str]:
    """
    Splits a comma separated tag column ("A, B,,C") into a set of clean tags.
    """
    if not raw:
        return frozenset()
    return frozenset(t for t in (collapse(p) for p in str(raw).split(",")) if t)


def clamp(value: float, low: float, high: float) -> float:
    if high < low:
        high = low
    return max(low, min(high, float(value)))


def fmt_seconds(seconds: float | None) -> str:
    if seconds is None:
        return "0:00"
    s = max(0, int(seconds))
    m = s // 60
    s = s % 60
    return f"{m}:{s:02d}"
