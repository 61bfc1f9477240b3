import datetime
from decimal import Decimal

from piiscan.models import Finding, MatchSource


def to_text(value):
    """Canonical string form of a sampled value, None for NULL."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return "0x" + bytes(value).hex().upper()
    if isinstance(value, datetime.datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return format(value, 'f')
    return str(value)


def classify_by_content(column, sample, patterns):
    """
    Match the sampled values of one column against the content patterns.

    Patterns are tried in store order; the first one that matches any
    non-null value wins and no further patterns are evaluated.
    """
    values = [to_text(v) for v in sample.values(column.column)]
    values = [v for v in values if v is not None]
    if not values:
        return None

    for pattern in patterns:
        if any(pattern.regex.search(v) for v in values):
            return Finding(
                column=column,
                pii_name=pattern.name,
                pii_category=pattern.category,
                matched_via=MatchSource.CONTENT_RULE,
                pattern=pattern.pattern,
            )
    return None
