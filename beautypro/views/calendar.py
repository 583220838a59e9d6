from __future__ import annotations

import asyncio
import logging
from calendar import monthrange
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Callable, List, Optional, Tuple

from beautypro.schemas.appointment import Appointment
from beautypro.schemas.catalog import Service, Stylist
from beautypro.services.appointment import AppointmentService
from beautypro.services.catalog import CatalogService
from beautypro.services.exceptions import ServiceError
from beautypro.services.realtime import AppointmentChangeFeed, AppointmentChangeListener

logger = logging.getLogger(__name__)

VIEWS = ("month", "week", "day")
DEFAULT_VIEW = "week"
NAVIGATE_ACTIONS = ("PREV", "NEXT", "TODAY", "DATE")

# Time grid shown by the week and day views.
DAY_START = time(8, 0)
DAY_END = time(20, 0)
STEP_MINUTES = 15
TIMESLOTS = 4


class CalendarState:
    """Appointments, services and stylists shared by every calendar view.

    Each fetch is best effort: a failed read is logged and the previously
    loaded list is kept as is. While mounted, every change on the
    appointments table triggers a full re-fetch of appointments.
    """

    def __init__(
        self,
        appointments: AppointmentService,
        catalog: CatalogService,
        feed: AppointmentChangeFeed,
    ) -> None:
        self._appointment_service = appointments
        self._catalog = catalog
        self.appointments: List[Appointment] = []
        self.services: List[Service] = []
        self.stylists: List[Stylist] = []
        self.loading = True
        self.listener = AppointmentChangeListener(feed, self.fetch_appointments)
        self._mounted = False
        self._mount_lock = asyncio.Lock()

    @property
    def mounted(self) -> bool:
        return self._mounted

    async def fetch_appointments(self) -> None:
        try:
            self.appointments = await self._appointment_service.fetch_scheduled()
        except ServiceError as exc:
            logger.error("Error fetching appointments: %s", exc)

    async def fetch_services(self) -> None:
        try:
            self.services = await self._catalog.fetch_services()
        except ServiceError as exc:
            logger.error("Error fetching services: %s", exc)

    async def fetch_stylists(self) -> None:
        try:
            self.stylists = await self._catalog.fetch_stylists()
        except ServiceError as exc:
            logger.error("Error fetching stylists: %s", exc)

    async def load(self) -> None:
        self.loading = True
        try:
            await asyncio.gather(
                self.fetch_appointments(),
                self.fetch_services(),
                self.fetch_stylists(),
            )
        finally:
            self.loading = False

    async def mount(self) -> None:
        async with self._mount_lock:
            if self._mounted:
                return
            await asyncio.gather(self.load(), self.listener.start())
            self._mounted = True
            logger.info(
                "Calendar mounted with %d appointments, %d services, %d stylists",
                len(self.appointments),
                len(self.services),
                len(self.stylists),
            )

    async def unmount(self) -> None:
        await self.listener.stop()
        self._mounted = False

    def find(self, appointment_id: str) -> Optional[Appointment]:
        for appointment in self.appointments:
            if appointment.id == appointment_id:
                return appointment
        return None


def start_of_week(day: date) -> date:
    """Sunday on or before ``day``."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def add_months(day: date, months: int) -> date:
    years, month_index = divmod(day.month - 1 + months, 12)
    year = day.year + years
    month = month_index + 1
    return date(year, month, min(day.day, monthrange(year, month)[1]))


def format_time(value: datetime) -> str:
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"


def format_long_date(value: date) -> str:
    day = value.day
    if 10 <= day % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return f"{value:%B} {day}{suffix}, {value.year}"


class CalendarView:
    """Per-session calendar state: view mode, navigation date and selection."""

    def __init__(
        self,
        state: CalendarState,
        *,
        tz: tzinfo = timezone.utc,
        clock: Callable[[], datetime] | None = None,
        view: str = DEFAULT_VIEW,
        current_date: date | None = None,
    ) -> None:
        self._state = state
        self._tz = tz
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.view = DEFAULT_VIEW
        self.set_view(view)
        self.date = current_date or self.today()
        self._selected: Optional[Appointment] = None

    @property
    def state(self) -> CalendarState:
        return self._state

    @property
    def selected(self) -> Optional[Appointment]:
        return self._selected

    def now(self) -> datetime:
        return self.localize(self._clock())

    def today(self) -> date:
        return self.now().date()

    def localize(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(self._tz)

    def set_view(self, view: str) -> None:
        if view not in VIEWS:
            raise ValueError(f"Unsupported calendar view '{view}'")
        self.view = view

    def navigate(self, action: str, target: date | None = None) -> date:
        action = action.upper()
        if action == "TODAY":
            self.date = self.today()
        elif action == "DATE":
            if target is None:
                raise ValueError("DATE navigation requires a target date")
            self.date = target
        elif action in ("PREV", "NEXT"):
            step = -1 if action == "PREV" else 1
            if self.view == "month":
                self.date = add_months(self.date, step)
            elif self.view == "week":
                self.date = self.date + timedelta(weeks=step)
            else:
                self.date = self.date + timedelta(days=step)
        else:
            raise ValueError(f"Unsupported navigation action '{action}'")
        return self.date

    def select_event(self, appointment_id: str) -> Appointment:
        appointment = self._state.find(appointment_id)
        if appointment is None:
            raise LookupError(f"Appointment '{appointment_id}' not found")
        self._selected = appointment
        return appointment

    def clear_selection(self) -> None:
        self._selected = None

    def visible_days(self) -> List[date]:
        if self.view == "day":
            return [self.date]
        if self.view == "week":
            first = start_of_week(self.date)
            return [first + timedelta(days=offset) for offset in range(7)]
        first_of_month = self.date.replace(day=1)
        last_of_month = first_of_month.replace(
            day=monthrange(first_of_month.year, first_of_month.month)[1]
        )
        first = start_of_week(first_of_month)
        last = start_of_week(last_of_month) + timedelta(days=6)
        return [first + timedelta(days=offset) for offset in range((last - first).days + 1)]

    def visible_range(self) -> Tuple[datetime, datetime]:
        days = self.visible_days()
        start = datetime.combine(days[0], time(0, 0), tzinfo=self._tz)
        end = datetime.combine(days[-1] + timedelta(days=1), time(0, 0), tzinfo=self._tz)
        return start, end

    def visible_events(self) -> List[Appointment]:
        start, end = self.visible_range()
        return [
            appointment
            for appointment in self._state.appointments
            if self.localize(appointment.start) < end and self.localize(appointment.end) > start
        ]

    def events_on(self, day: date) -> List[Appointment]:
        return [
            appointment
            for appointment in self.visible_events()
            if self.localize(appointment.start).date() == day
        ]

    @property
    def label(self) -> str:
        if self.view == "month":
            return f"{self.date:%B %Y}"
        if self.view == "day":
            return f"{self.date:%A %b %d}"
        first = start_of_week(self.date)
        last = first + timedelta(days=6)
        if first.month == last.month:
            return f"{first:%B %d} – {last:%d}"
        return f"{first:%B %d} – {last:%B %d}"

    def todays_count(self) -> int:
        today = self.today()
        return sum(
            1 for appointment in self._state.appointments
            if self.localize(appointment.start).date() == today
        )

    def this_week_count(self) -> int:
        week = start_of_week(self.today())
        return sum(
            1 for appointment in self._state.appointments
            if start_of_week(self.localize(appointment.start).date()) == week
        )

    def tooltip(self, appointment: Appointment) -> str:
        start = self.localize(appointment.start)
        end = self.localize(appointment.end)
        return (
            f"{appointment.service_name} with {appointment.stylist_name}\n"
            f"{format_time(start)} - {format_time(end)}"
        )

    def time_slots(self) -> List[time]:
        slots = []
        cursor = datetime.combine(self.date, DAY_START)
        stop = datetime.combine(self.date, DAY_END)
        while cursor < stop:
            slots.append(cursor.time())
            cursor += timedelta(minutes=STEP_MINUTES)
        return slots
