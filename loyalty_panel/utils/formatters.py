"""Display helpers for numbers in API summaries (Polish locale conventions)."""

from datetime import datetime

from loyalty_panel.utils.dates import utcnow

PLACEHOLDER = "-"

# pl-PL groups thousands with a non-breaking space and uses a decimal comma
_GROUP_SEPARATOR = "\u00a0"


def _group(text: str) -> str:
    return text.replace(",", _GROUP_SEPARATOR).replace(".", ",")


def format_number(value: int | float | None) -> str:
    if value is None:
        return PLACEHOLDER
    if isinstance(value, float) and not value.is_integer():
        return _group(f"{value:,.3f}".rstrip("0").rstrip("."))
    return _group(f"{int(value):,}")


def format_currency(amount: int | float | None) -> str:
    if amount is None:
        return PLACEHOLDER
    return f"{_group(f'{amount:,.2f}')}{_GROUP_SEPARATOR}zł"


def format_percentage(value: int | float | None, decimals: int = 1) -> str:
    if value is None:
        return PLACEHOLDER
    return f"{value:.{decimals}f}%"


def format_trend(trend: int) -> str:
    """Signed whole-percent trend, e.g. +12% or -5%."""
    return f"{trend:+d}%" if trend else "0%"


def format_date(value: datetime | None) -> str:
    if value is None:
        return PLACEHOLDER
    return value.strftime("%d.%m.%Y, %H:%M")


def format_relative_time(value: datetime | None, now: datetime | None = None) -> str:
    if value is None:
        return PLACEHOLDER
    seconds = int(((now or utcnow()) - value).total_seconds())
    minutes, hours, days = seconds // 60, seconds // 3600, seconds // 86400
    if seconds < 60:
        return "just now"
    if minutes < 60:
        return f"{minutes} min ago"
    if hours < 24:
        return f"{hours} h ago"
    if days < 7:
        return f"{days} days ago"
    return format_date(value)
