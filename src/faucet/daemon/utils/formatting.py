"""Human-readable rendering helpers for chat replies."""


def format_duration(seconds: float) -> str:
    """Render a non-negative duration as HH:MM:SS."""
    total = max(0, int(seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
