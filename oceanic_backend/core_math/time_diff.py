from .time_of_day import signed_delta_minutes

SAME_THRESHOLD_MINUTES = 2


def _plural(n: int, unit: str) -> str:
    return f"{n} {unit}" if n == 1 else f"{n} {unit}s"


def format_diff(reference: str, other: str) -> str:
    """
    Display text for where `other` sits relative to `reference` on the clock.
    Under 2 minutes apart reads "Same", otherwise e.g. "1 hour 3 minutes before".
    """
    delta = signed_delta_minutes(reference, other)
    if abs(delta) < SAME_THRESHOLD_MINUTES:
        return "Same"

    hours, minutes = divmod(abs(delta), 60)
    parts = []
    if hours:
        parts.append(_plural(hours, "hour"))
    if minutes:
        parts.append(_plural(minutes, "minute"))

    direction = "after" if delta > 0 else "before"
    return f"{' '.join(parts)} {direction}"
