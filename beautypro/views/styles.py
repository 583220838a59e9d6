"""Status-driven presentation: event colors, badges and the legend."""

from typing import Dict, List, Tuple

DEFAULT_EVENT_COLOR = "#3b82f6"

STATUS_COLORS: Dict[str, str] = {
    "confirmed": "#10b981",
    "completed": "#6b7280",
    "cancelled": "#ef4444",
}

STATUS_COLOR_NAMES: Dict[str, str] = {
    "confirmed": "green",
    "completed": "gray",
    "cancelled": "red",
}

BADGE_VARIANTS: Dict[str, str] = {
    "confirmed": "default",
    "completed": "secondary",
    "cancelled": "destructive",
}

BADGE_CLASSES: Dict[str, str] = {
    "default": "badge badge-default",
    "secondary": "badge badge-secondary",
    "destructive": "badge badge-destructive",
    "outline": "badge badge-outline",
}

LEGEND: List[Tuple[str, str]] = [
    ("Scheduled", DEFAULT_EVENT_COLOR),
    ("Confirmed", STATUS_COLORS["confirmed"]),
    ("Completed", STATUS_COLORS["completed"]),
    ("Cancelled", STATUS_COLORS["cancelled"]),
]


def event_color(status: str) -> str:
    """Background color for an event; anything unrecognised renders as scheduled."""
    return STATUS_COLORS.get(status, DEFAULT_EVENT_COLOR)


def color_name(status: str) -> str:
    return STATUS_COLOR_NAMES.get(status, "blue")


def event_style(status: str) -> Dict[str, str]:
    return {
        "backgroundColor": event_color(status),
        "borderRadius": "6px",
        "opacity": "0.9",
        "color": "white",
        "border": "none",
        "fontSize": "12px",
        "padding": "2px 4px",
    }


def css_declarations(style: Dict[str, str]) -> str:
    """Render a camelCase style mapping as an inline ``style`` attribute value."""
    parts = []
    for key, value in style.items():
        name = "".join(f"-{char.lower()}" if char.isupper() else char for char in key)
        parts.append(f"{name}: {value}")
    return "; ".join(parts)


def badge_variant(status: str) -> str:
    return BADGE_VARIANTS.get(status, "outline")


def status_label(status: str) -> str:
    return status[:1].upper() + status[1:]
