"""Server-side HTML for the login page, dashboard and appointment calendar."""
from __future__ import annotations

import html
from datetime import date, datetime
from typing import Dict, List, Optional

from beautypro.schemas.appointment import Appointment
from beautypro.schemas.auth import AuthUser
from beautypro.views.calendar import (
    DAY_END,
    DAY_START,
    STEP_MINUTES,
    TIMESLOTS,
    VIEWS,
    CalendarView,
    format_long_date,
    format_time,
)
from beautypro.views.styles import (
    BADGE_CLASSES,
    LEGEND,
    badge_variant,
    css_declarations,
    event_style,
    status_label,
)

_STYLESHEET = """
body { font-family: Arial, sans-serif; margin: 0; background: #f9fafb; color: #111827; }
nav { background: #fff; box-shadow: 0 1px 2px rgba(0,0,0,0.1); padding: 0 2rem; height: 4rem;
      display: flex; align-items: center; justify-content: space-between; }
main { max-width: 80rem; margin: 0 auto; padding: 2rem; }
.card { background: #fff; border: 1px solid #e5e7eb; border-radius: 0.5rem; margin-bottom: 1.5rem; }
.card-header { padding: 1rem 1.5rem; border-bottom: 1px solid #e5e7eb; display: flex;
               justify-content: space-between; align-items: center; }
.card-content { padding: 1rem 1.5rem; }
.stats { display: grid; grid-template-columns: repeat(4, 1fr); gap: 1rem; }
.stat-label { font-size: 0.875rem; color: #4b5563; margin: 0; }
.stat-value { font-size: 1.5rem; font-weight: bold; margin: 0; }
.toolbar { display: flex; justify-content: space-between; align-items: center; margin-bottom: 1rem; }
.toolbar form { display: inline; }
button { padding: 0.25rem 0.5rem; border-radius: 0.375rem; border: 1px solid #d1d5db;
         background: #fff; cursor: pointer; }
button.primary, button.active { background: #2563eb; color: #fff; border: none; }
button:disabled { cursor: not-allowed; opacity: 0.6; }
table.grid { border-collapse: collapse; width: 100%; table-layout: fixed; }
table.grid th, table.grid td { border: 1px solid #e5e7eb; vertical-align: top; padding: 2px; font-size: 12px; }
td.off-range { background: #f3f4f6; color: #9ca3af; }
td.slot-label { width: 4rem; color: #6b7280; }
form.event { margin: 1px 0; }
form.event button { width: 100%; text-align: left; }
.details { display: grid; grid-template-columns: 1fr 1fr; gap: 1rem; }
.details label { font-size: 0.875rem; color: #4b5563; }
.badge { display: inline-block; padding: 0.125rem 0.625rem; border-radius: 9999px; font-size: 0.75rem; }
.badge-default { background: #dbeafe; color: #1e40af; }
.badge-secondary { background: #f3f4f6; color: #1f2937; }
.badge-destructive { background: #fee2e2; color: #991b1b; }
.badge-outline { border: 1px solid #d1d5db; color: #374151; }
.legend { display: flex; gap: 1rem; align-items: center; }
.swatch { display: inline-block; width: 0.75rem; height: 0.75rem; border-radius: 0.125rem; }
.error { color: #b91c1c; }
"""


def _e(value: object) -> str:
    return html.escape(str(value), quote=True)


def render_page(title: str, body: str) -> str:
    return (
        "<!DOCTYPE html><html><head>"
        f"<meta charset=\"utf-8\"><title>{_e(title)}</title>"
        f"<style>{_STYLESHEET}</style>"
        f"</head><body>{body}</body></html>"
    )


def render_login(*, error: Optional[str] = None, email: str = "") -> str:
    error_html = f"<p class=\"error\">{_e(error)}</p>" if error else ""
    body = f"""
    <main>
        <div class="card"><div class="card-header"><h1>Sign in</h1></div>
        <div class="card-content">
            {error_html}
            <form method="post" action="/auth/login">
                <p><label>Email <input type="email" name="email" value="{_e(email)}" required></label></p>
                <p><label>Password <input type="password" name="password" required></label></p>
                <button class="primary" type="submit">Sign In</button>
            </form>
        </div></div>
    </main>
    """
    return render_page("Sign in", body)


def render_dashboard(title: str, user: AuthUser, calendar_html: str) -> str:
    body = f"""
    <nav>
        <h1>{_e(title)}</h1>
        <form method="post" action="/auth/sign-out"><button class="primary" type="submit">Sign Out</button></form>
    </nav>
    <main>
        <h2>Welcome, {_e(user.email)}!</h2>
        {calendar_html}
    </main>
    """
    return render_page(title, body)


def render_calendar(view: CalendarView) -> str:
    state = view.state
    if state.loading:
        return "<div class=\"card\"><div class=\"card-content\"><p>Loading appointments...</p></div></div>"

    sections = [
        _render_stats(view),
        _render_calendar_card(view),
    ]
    if view.selected is not None:
        sections.append(render_details(view, view.selected))
    sections.append(_render_legend())
    return "".join(sections)


def _stat(label: str, value: int) -> str:
    return (
        "<div class=\"card\"><div class=\"card-content\">"
        f"<p class=\"stat-label\">{_e(label)}</p>"
        f"<p class=\"stat-value\">{value}</p>"
        "</div></div>"
    )


def _render_stats(view: CalendarView) -> str:
    return (
        "<div class=\"stats\">"
        + _stat("Today's Appointments", view.todays_count())
        + _stat("This Week", view.this_week_count())
        + _stat("Active Stylists", len(view.state.stylists))
        + _stat("Services", len(view.state.services))
        + "</div>"
    )


def _render_toolbar(view: CalendarView) -> str:
    nav_buttons = []
    for action, text in (("PREV", "&larr;"), ("NEXT", "&rarr;"), ("TODAY", "Today")):
        nav_buttons.append(
            "<form method=\"post\" action=\"/dashboard/calendar/navigate\">"
            f"<input type=\"hidden\" name=\"action\" value=\"{action}\">"
            f"<button type=\"submit\">{text}</button></form>"
        )
    view_buttons = []
    for mode in VIEWS:
        css = " class=\"active\"" if mode == view.view else ""
        view_buttons.append(
            "<form method=\"post\" action=\"/dashboard/calendar/view\">"
            f"<input type=\"hidden\" name=\"view\" value=\"{mode}\">"
            f"<button type=\"submit\"{css}>{mode.capitalize()}</button></form>"
        )
    return (
        "<div class=\"toolbar\"><div>"
        + nav_buttons[0]
        + f" <strong class=\"label\">{_e(view.label)}</strong> "
        + "".join(nav_buttons[1:])
        + "</div><div>"
        + "".join(view_buttons)
        + "</div></div>"
    )


def render_event(view: CalendarView, appointment: Appointment) -> str:
    style = css_declarations(event_style(appointment.status))
    return (
        f"<form class=\"event\" method=\"post\" action=\"/dashboard/calendar/select/{_e(appointment.id)}\">"
        f"<button type=\"submit\" style=\"{_e(style)}\" title=\"{_e(view.tooltip(appointment))}\""
        f" data-status=\"{_e(appointment.status)}\">{_e(appointment.title)}</button></form>"
    )


def _render_month(view: CalendarView) -> str:
    days = view.visible_days()
    rows: List[str] = []
    header = "".join(f"<th>{day:%a}</th>" for day in days[:7])
    for week_start in range(0, len(days), 7):
        cells = []
        for day in days[week_start:week_start + 7]:
            css = "" if day.month == view.date.month else " class=\"off-range\""
            events = "".join(render_event(view, appointment) for appointment in view.events_on(day))
            cells.append(f"<td{css}><div>{day.day}</div>{events}</td>")
        rows.append("<tr>" + "".join(cells) + "</tr>")
    return f"<table class=\"grid month\"><thead><tr>{header}</tr></thead><tbody>{''.join(rows)}</tbody></table>"


def _slot_index(start: datetime) -> int:
    minutes = (start.hour * 60 + start.minute) - (DAY_START.hour * 60 + DAY_START.minute)
    last = (DAY_END.hour * 60 + DAY_END.minute - DAY_START.hour * 60 - DAY_START.minute) // STEP_MINUTES - 1
    return max(0, min(minutes // STEP_MINUTES, last))


def _render_time_grid(view: CalendarView) -> str:
    days = view.visible_days()
    slots = view.time_slots()
    placed: Dict[tuple, List[Appointment]] = {}
    for day in days:
        for appointment in view.events_on(day):
            key = (day, _slot_index(view.localize(appointment.start)))
            placed.setdefault(key, []).append(appointment)

    header = "<th></th>" + "".join(f"<th>{day:%a %m/%d}</th>" for day in days)
    rows = []
    for index, slot in enumerate(slots):
        label = format_time(datetime.combine(date.today(), slot)) if index % TIMESLOTS == 0 else ""
        cells = [f"<td class=\"slot-label\">{label}</td>"]
        for day in days:
            events = "".join(render_event(view, appointment) for appointment in placed.get((day, index), []))
            cells.append(f"<td>{events}</td>")
        rows.append("<tr>" + "".join(cells) + "</tr>")
    return (
        f"<table class=\"grid {view.view}\"><thead><tr>{header}</tr></thead>"
        f"<tbody>{''.join(rows)}</tbody></table>"
    )


def _render_calendar_card(view: CalendarView) -> str:
    grid = _render_month(view) if view.view == "month" else _render_time_grid(view)
    return (
        "<div class=\"card\"><div class=\"card-header\"><h3>Appointment Calendar</h3></div>"
        f"<div class=\"card-content\">{_render_toolbar(view)}{grid}</div></div>"
    )


def _field(label: str, value: str, extra: str = "") -> str:
    return f"<div><label>{_e(label)}</label><p>{_e(value)}</p>{extra}</div>"


def render_details(view: CalendarView, appointment: Appointment) -> str:
    start = view.localize(appointment.start)
    end = view.localize(appointment.end)
    badge_class = BADGE_CLASSES[badge_variant(appointment.status)]
    price = _field("Price", f"${appointment.service_price:g}")
    when = _field(
        "Date & Time",
        format_long_date(start.date()),
        f"<p>{format_time(start)} - {format_time(end)}</p>",
    )
    notes = ""
    if appointment.notes:
        notes = f"<div><label>Notes</label><p>{_e(appointment.notes)}</p></div>"
    return f"""
    <div class="card appointment-details">
        <div class="card-header"><h3>Appointment Details</h3>
            <form method="post" action="/dashboard/calendar/deselect"><button type="submit">&#10005;</button></form>
        </div>
        <div class="card-content">
            <div class="details">
                {_field("Client", appointment.client_name)}
                {_field("Stylist", appointment.stylist_name)}
                {_field("Service", appointment.service_name)}
                {price}
                {when}
                <div><label>Status</label>
                    <p><span class="{badge_class}">{_e(status_label(appointment.status))}</span></p></div>
            </div>
            {notes}
            <div class="actions">
                <button type="button" disabled>Reschedule</button>
                <button type="button" disabled>Cancel</button>
                <button type="button" class="primary" disabled>Mark Complete</button>
            </div>
        </div>
    </div>
    """


def _render_legend() -> str:
    items = "".join(
        f"<span><span class=\"swatch\" style=\"background-color: {color}\"></span> {_e(label)}</span>"
        for label, color in LEGEND
    )
    return (
        "<div class=\"card\"><div class=\"card-content legend\">"
        f"<strong>Status Legend:</strong>{items}</div></div>"
    )
