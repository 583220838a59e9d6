from __future__ import annotations

import itertools
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from pydantic import AwareDatetime, TypeAdapter

from beautypro.schemas.appointment import ChangeEvent
from beautypro.schemas.auth import AuthSession, AuthUser
from beautypro.services.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[ChangeEvent], None]


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


_TIMESTAMP = TypeAdapter(AwareDatetime)


def _parse_timestamp(value: str) -> datetime:
    return _TIMESTAMP.validate_python(value)


class _BaseRepository:
    def __init__(self, prefix: str) -> None:
        self._prefix = prefix
        self._counter = itertools.count(1)

    def _next_id(self) -> str:
        return f"{self._prefix}-{next(self._counter):05d}"


class ProfileRepository(_BaseRepository):
    """Rows of the ``profiles`` table: clients, stylists and staff."""

    def __init__(self) -> None:
        super().__init__("PRF")
        self._profiles: Dict[str, Dict[str, Any]] = {}

    def add(self, full_name: str, role: str, *, phone: str | None = None, email: str | None = None) -> str:
        profile_id = self._next_id()
        self._profiles[profile_id] = {
            "id": profile_id,
            "full_name": full_name,
            "role": role,
            "phone": phone,
            "email": email,
            "created_at": _utc_now_iso(),
        }
        return profile_id

    async def list(self, role: Optional[str] = None) -> List[Dict[str, Any]]:
        rows = [
            dict(row)
            for row in self._profiles.values()
            if role is None or row["role"] == role
        ]
        return sorted(rows, key=lambda row: (row["full_name"] is None, row["full_name"] or ""))

    def get(self, profile_id: str | None) -> Optional[Dict[str, Any]]:
        if profile_id is None:
            return None
        profile = self._profiles.get(profile_id)
        return dict(profile) if profile is not None else None


class ServiceRepository(_BaseRepository):
    """Rows of the ``services`` table."""

    def __init__(self) -> None:
        super().__init__("SRV")
        self._services: Dict[str, Dict[str, Any]] = {}

    def add(
        self,
        name: str,
        *,
        duration: int,
        price: float,
        category: str,
        active: bool = True,
    ) -> str:
        service_id = self._next_id()
        self._services[service_id] = {
            "id": service_id,
            "name": name,
            "duration": duration,
            "price": price,
            "category": category,
            "active": active,
        }
        return service_id

    async def list(self, active: Optional[bool] = None) -> List[Dict[str, Any]]:
        rows = [
            dict(row)
            for row in self._services.values()
            if active is None or row["active"] is active
        ]
        return sorted(rows, key=lambda row: (row["name"] is None, row["name"] or ""))

    def get(self, service_id: str | None) -> Optional[Dict[str, Any]]:
        if service_id is None:
            return None
        service = self._services.get(service_id)
        return dict(service) if service is not None else None


class AppointmentRepository(_BaseRepository):
    """Rows of the ``appointments`` table plus its change feed."""

    def __init__(self, profiles: ProfileRepository, services: ServiceRepository) -> None:
        super().__init__("APT")
        self._profiles = profiles
        self._services = services
        self._appointments: Dict[str, Dict[str, Any]] = {}
        self._subscribers: List[ChangeCallback] = []

    async def list_joined(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        """Return rows shaped like the embedded PostgREST select used by the calendar."""

        rows = []
        for record in self._appointments.values():
            if status is not None and record["status"] != status:
                continue
            row = dict(record)
            row["client"] = self._embed(
                self._profiles.get(record.get("client_id")), ("full_name", "phone")
            )
            row["stylist"] = self._embed(
                self._profiles.get(record.get("stylist_id")), ("full_name",)
            )
            row["service"] = self._embed(
                self._services.get(record.get("service_id")), ("name", "price", "category")
            )
            rows.append(row)
        return sorted(rows, key=lambda row: _parse_timestamp(row["start_time"]))

    async def get(self, appointment_id: str) -> Optional[Dict[str, Any]]:
        appointment = self._appointments.get(appointment_id)
        return dict(appointment) if appointment is not None else None

    async def insert(
        self,
        *,
        client_id: str,
        stylist_id: str,
        service_id: str,
        start_time: str,
        end_time: str,
        status: str = "scheduled",
        notes: str | None = None,
    ) -> Dict[str, Any]:
        appointment_id = self._next_id()
        record = {
            "id": appointment_id,
            "client_id": client_id,
            "stylist_id": stylist_id,
            "service_id": service_id,
            "start_time": start_time,
            "end_time": end_time,
            "status": status,
            "notes": notes,
            "created_at": _utc_now_iso(),
        }
        self._appointments[appointment_id] = record
        self._publish("INSERT", dict(record), {})
        return dict(record)

    async def update(self, appointment_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        existing = self._appointments.get(appointment_id)
        if existing is None:
            return None
        old_record = dict(existing)
        existing.update({key: value for key, value in changes.items() if key != "id"})
        self._publish("UPDATE", dict(existing), old_record)
        return dict(existing)

    async def delete(self, appointment_id: str) -> bool:
        removed = self._appointments.pop(appointment_id, None)
        if removed is None:
            return False
        self._publish("DELETE", {}, {"id": removed["id"]})
        return True

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        """Register ``callback`` for every change; returns a function that removes it."""

        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def _publish(self, event_type: str, record: Dict[str, Any], old_record: Dict[str, Any]) -> None:
        event = ChangeEvent(
            event_type=event_type,
            table="appointments",
            record=record,
            old_record=old_record,
            commit_timestamp=_utc_now_iso(),
        )
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception("Change subscriber failed for %s event", event_type)

    @staticmethod
    def _embed(row: Optional[Dict[str, Any]], columns: tuple) -> Optional[Dict[str, Any]]:
        if row is None:
            return None
        return {column: row.get(column) for column in columns}


class AuthRepository:
    """Password accounts and issued access tokens for mock mode."""

    def __init__(self) -> None:
        self._accounts: Dict[str, Dict[str, Any]] = {}
        self._tokens: Dict[str, str] = {}
        self._counter = itertools.count(1)

    def add_account(self, email: str, password: str, *, role: str = "authenticated") -> AuthUser:
        user = AuthUser(id=f"USR-{next(self._counter):05d}", email=email.lower(), role=role)
        self._accounts[user.email] = {"password": password, "user": user}
        return user

    async def sign_in(self, email: str, password: str) -> AuthSession:
        account = self._accounts.get(email.strip().lower())
        if account is None or account["password"] != password:
            raise AuthenticationError("Invalid login credentials")
        token = secrets.token_urlsafe(24)
        self._tokens[token] = account["user"].email
        return AuthSession(
            access_token=token,
            refresh_token=secrets.token_urlsafe(24),
            user=account["user"],
        )

    async def sign_out(self, access_token: str) -> None:
        self._tokens.pop(access_token, None)

    async def get_user(self, access_token: str) -> Optional[AuthUser]:
        email = self._tokens.get(access_token)
        if email is None:
            return None
        return self._accounts[email]["user"]

    @property
    def active_tokens(self) -> int:
        return len(self._tokens)


@dataclass
class MockDataStore:
    profiles: ProfileRepository
    services: ServiceRepository
    appointments: AppointmentRepository
    auth: AuthRepository


DEMO_EMAIL = "owner@beautypro.example"
DEMO_PASSWORD = "beautypro"


def build_mock_store(*, seed: bool = True, today: datetime | None = None) -> MockDataStore:
    profiles = ProfileRepository()
    services = ServiceRepository()
    store = MockDataStore(
        profiles=profiles,
        services=services,
        appointments=AppointmentRepository(profiles, services),
        auth=AuthRepository(),
    )
    if seed:
        _seed(store, today or datetime.now(timezone.utc))
    return store


def _seed(store: MockDataStore, today: datetime) -> None:
    store.auth.add_account(DEMO_EMAIL, DEMO_PASSWORD)

    mia = store.profiles.add("Mia Santos", "stylist", phone="555-0101")
    leo = store.profiles.add("Leo Park", "stylist", phone="555-0102")
    store.profiles.add("Rita Gomez", "receptionist", phone="555-0103")
    ana = store.profiles.add("Ana Ruiz", "client", phone="555-0201", email="ana@example.com")
    ben = store.profiles.add("Ben Cole", "client", phone="555-0202")
    cara = store.profiles.add("Cara Diaz", "client")

    cut = store.services.add("Women's Haircut", duration=45, price=55.0, category="hair")
    colour = store.services.add("Full Colour", duration=120, price=140.0, category="colour")
    blowout = store.services.add("Blowout", duration=30, price=35.0, category="styling")
    store.services.add("Keratin Treatment", duration=150, price=220.0, category="treatment", active=False)

    day = datetime.combine(today.date(), time(0, 0), tzinfo=timezone.utc)
    seeds = [
        (ana, mia, cut, timedelta(hours=10), 45, "scheduled", "Prefers layered cut"),
        (ben, leo, blowout, timedelta(hours=13, minutes=30), 30, "scheduled", None),
        (cara, mia, colour, timedelta(days=1, hours=9), 120, "scheduled", None),
        (ana, leo, blowout, timedelta(days=2, hours=15), 30, "confirmed", None),
        (ben, mia, cut, timedelta(days=-1, hours=11), 45, "completed", None),
        (cara, leo, cut, timedelta(days=3, hours=16), 45, "cancelled", "Client called to cancel"),
    ]
    for client_id, stylist_id, service_id, offset, minutes, status, notes in seeds:
        start = day + offset
        record = {
            "id": store.appointments._next_id(),
            "client_id": client_id,
            "stylist_id": stylist_id,
            "service_id": service_id,
            "start_time": start.isoformat(),
            "end_time": (start + timedelta(minutes=minutes)).isoformat(),
            "status": status,
            "notes": notes,
            "created_at": _utc_now_iso(),
        }
        store.appointments._appointments[record["id"]] = record


_mock_store: Optional[MockDataStore] = None


def get_mock_store() -> MockDataStore:
    global _mock_store
    if _mock_store is None:
        _mock_store = build_mock_store()
    return _mock_store


def reset_mock_store(store: MockDataStore | None = None) -> None:
    global _mock_store
    _mock_store = store
