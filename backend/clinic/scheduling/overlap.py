from datetime import datetime


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open interval overlap. Intervals that only touch do not overlap."""
    return a_start < b_end and b_start < a_end
