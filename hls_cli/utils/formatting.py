"""
Human-readable sizes, speeds and durations for progress lines and summaries.
"""

_SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_size(num_bytes: float) -> str:
    """'145.3 MB' style size string."""
    if num_bytes <= 0:
        return "0 B"
    value = float(num_bytes)
    for unit in _SIZE_UNITS[:-1]:
        if value < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} {_SIZE_UNITS[-1]}"


def format_speed(num_bytes: int, seconds: float) -> str:
    """Average transfer rate, or an empty string when no time has elapsed."""
    if seconds <= 0:
        return ""
    return f"{format_size(num_bytes / seconds)}/s"


def format_duration(seconds: float) -> str:
    """'1h 4m 12s' style duration; stream lengths are rounded to whole seconds."""
    hours, remainder = divmod(round(seconds), 3600)
    minutes, secs = divmod(remainder, 60)
    parts = [f"{hours}h"] if hours else []
    if minutes:
        parts.append(f"{minutes}m")
    if secs or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)
