import asyncio
import os
import sys

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from beautypro.services.appointment import AppointmentService, format_appointment
from beautypro.services.auth import AuthService
from beautypro.services.catalog import CatalogService
from beautypro.services.exceptions import (
    AuthenticationError,
    DownstreamServiceError,
    ServiceError,
)
from beautypro.services.mock_store import (
    DEMO_EMAIL,
    DEMO_PASSWORD,
    build_mock_store,
    get_mock_store,
    reset_mock_store,
)


@pytest.fixture(autouse=True)
def _reset_store() -> None:
    reset_mock_store(build_mock_store(seed=False))
    yield
    reset_mock_store()


class MockLatencyClient:
    """Client stub that records simulate_latency calls."""

    def __init__(self) -> None:
        self.use_mock_data = True
        self.latency_called = False

    async def simulate_latency(self) -> None:
        self.latency_called = True


class RecordingClient:
    """Live-mode client stub that records PostgREST reads."""

    def __init__(self, rows=None, error: Exception | None = None) -> None:
        self.use_mock_data = False
        self.rows = rows or []
        self.error = error
        self.calls = []

    async def select(self, table, **kwargs):
        self.calls.append((table, kwargs))
        if self.error is not None:
            raise self.error
        return self.rows


def _seed_salon(store):
    stylist = store.profiles.add("Mia Santos", "stylist")
    other_stylist = store.profiles.add("Abe Lin", "stylist")
    store.profiles.add("Rita Gomez", "receptionist")
    client = store.profiles.add("Ana Ruiz", "client", phone="555-0201")
    cut = store.services.add("Haircut", duration=45, price=55.0, category="hair")
    store.services.add("Blowout", duration=30, price=35.0, category="styling")
    store.services.add("Keratin", duration=150, price=220.0, category="treatment", active=False)
    return stylist, other_stylist, client, cut


def test_mock_appointments_only_include_scheduled_in_start_order() -> None:
    store = get_mock_store()
    stylist, _, client, cut = _seed_salon(store)

    async def scenario():
        for start, status in (
            ("2025-03-05T15:00:00+00:00", "scheduled"),
            ("2025-03-05T09:00:00+00:00", "scheduled"),
            ("2025-03-05T11:00:00+00:00", "confirmed"),
            ("2025-03-05T12:00:00+00:00", "cancelled"),
        ):
            await store.appointments.insert(
                client_id=client,
                stylist_id=stylist,
                service_id=cut,
                start_time=start,
                end_time=start.replace(":00:00+", ":45:00+"),
                status=status,
            )
        return await AppointmentService(mock_client).fetch_scheduled()

    mock_client = MockLatencyClient()
    appointments = asyncio.run(scenario())

    assert mock_client.latency_called is True
    assert [appointment.status for appointment in appointments] == ["scheduled", "scheduled"]
    assert appointments[0].start.hour == 9
    assert appointments[1].start.hour == 15
    first = appointments[0]
    assert first.title == "Haircut - Ana Ruiz"
    assert first.client_name == "Ana Ruiz"
    assert first.client_phone == "555-0201"
    assert first.stylist_name == "Mia Santos"
    assert first.service_price == 55.0


def test_format_appointment_falls_back_for_missing_joins() -> None:
    appointment = format_appointment(
        {
            "id": 42,
            "start_time": "2025-03-05T09:00:00Z",
            "end_time": "2025-03-05T09:30:00Z",
            "status": "scheduled",
            "client": None,
            "stylist": None,
            "service": None,
        }
    )

    assert appointment.id == "42"
    assert appointment.title == "Unknown Service - Unknown Client"
    assert appointment.stylist_name == "Unknown Stylist"
    assert appointment.service_price == 0
    assert appointment.client_phone is None
    assert appointment.notes is None


def test_mock_catalog_filters_active_services_and_stylists() -> None:
    store = get_mock_store()
    _seed_salon(store)
    catalog = CatalogService(MockLatencyClient())

    services = asyncio.run(catalog.fetch_services())
    stylists = asyncio.run(catalog.fetch_stylists())

    assert [service.name for service in services] == ["Blowout", "Haircut"]
    assert [stylist.full_name for stylist in stylists] == ["Abe Lin", "Mia Santos"]
    assert all(stylist.role == "stylist" for stylist in stylists)


def test_live_appointment_fetch_queries_joined_scheduled_rows() -> None:
    client = RecordingClient(
        rows=[
            {
                "id": "a1",
                "start_time": "2025-03-05T09:00:00+00:00",
                "end_time": "2025-03-05T09:45:00+00:00",
                "status": "scheduled",
                "notes": "Bring reference photo",
                "client": {"full_name": "Ana Ruiz", "phone": None},
                "stylist": {"full_name": "Mia Santos"},
                "service": {"name": "Haircut", "price": 55, "category": "hair"},
            }
        ]
    )

    appointments = asyncio.run(AppointmentService(client).fetch_scheduled())

    table, kwargs = client.calls[0]
    assert table == "appointments"
    assert kwargs["filters"] == {"status": "scheduled"}
    assert kwargs["order"] == "start_time"
    assert "client:client_id(full_name, phone)" in kwargs["columns"]
    assert "service:service_id(name, price, category)" in kwargs["columns"]
    assert appointments[0].notes == "Bring reference photo"


def test_live_catalog_queries_use_expected_filters() -> None:
    client = RecordingClient(rows=[])
    catalog = CatalogService(client)

    asyncio.run(catalog.fetch_services())
    asyncio.run(catalog.fetch_stylists())

    assert client.calls == [
        ("services", {"filters": {"active": True}, "order": "name"}),
        ("profiles", {"filters": {"role": "stylist"}, "order": "full_name"}),
    ]


def test_live_fetch_propagates_downstream_errors() -> None:
    client = RecordingClient(error=DownstreamServiceError("boom", status_code=503))

    with pytest.raises(DownstreamServiceError):
        asyncio.run(AppointmentService(client).fetch_scheduled())


def test_live_fetch_wraps_malformed_rows() -> None:
    client = RecordingClient(rows=[{"id": "broken"}])

    with pytest.raises(ServiceError, match="Failed to fetch appointments"):
        asyncio.run(AppointmentService(client).fetch_scheduled())


def test_mock_sign_in_and_sign_out() -> None:
    store = get_mock_store()
    store.auth.add_account(DEMO_EMAIL, DEMO_PASSWORD)
    auth = AuthService(MockLatencyClient())

    session = asyncio.run(auth.sign_in(DEMO_EMAIL.upper(), DEMO_PASSWORD))
    assert session.user.email == DEMO_EMAIL
    assert asyncio.run(auth.get_user(session.access_token)).email == DEMO_EMAIL

    asyncio.run(auth.sign_out(session.access_token))
    assert store.auth.active_tokens == 0
    assert asyncio.run(auth.get_user(session.access_token)) is None


def test_mock_sign_in_rejects_bad_password() -> None:
    get_mock_store().auth.add_account(DEMO_EMAIL, DEMO_PASSWORD)
    auth = AuthService(MockLatencyClient())

    with pytest.raises(AuthenticationError):
        asyncio.run(auth.sign_in(DEMO_EMAIL, "wrong"))


class LiveAuthClient:
    def __init__(self, error: Exception) -> None:
        self.use_mock_data = False
        self.error = error

    async def sign_in_with_password(self, email, password):
        raise self.error


def test_live_sign_in_maps_rejection_to_authentication_error() -> None:
    auth = AuthService(LiveAuthClient(DownstreamServiceError("bad", status_code=400)))

    with pytest.raises(AuthenticationError):
        asyncio.run(auth.sign_in("a@example.com", "nope"))


def test_live_sign_in_keeps_outage_as_downstream_error() -> None:
    auth = AuthService(LiveAuthClient(DownstreamServiceError("down", status_code=None)))

    with pytest.raises(DownstreamServiceError):
        asyncio.run(auth.sign_in("a@example.com", "secret"))


def test_live_catalog_keeps_rows_with_null_columns() -> None:
    services = RecordingClient(
        rows=[
            {"id": "s1", "name": "Blowout", "duration": 30, "price": 35, "category": None, "active": True},
            {"id": "s2", "name": "Haircut", "duration": None, "price": None, "category": "hair", "active": True},
        ]
    )
    stylists = RecordingClient(
        rows=[
            {"id": "p1", "full_name": None, "role": "stylist"},
            {"id": "p2", "full_name": "Mia Santos", "role": "stylist"},
        ]
    )

    loaded_services = asyncio.run(CatalogService(services).fetch_services())
    loaded_stylists = asyncio.run(CatalogService(stylists).fetch_stylists())

    assert [service.id for service in loaded_services] == ["s1", "s2"]
    assert loaded_services[0].category is None
    assert loaded_services[1].duration is None
    assert [stylist.full_name for stylist in loaded_stylists] == [None, "Mia Santos"]


def test_live_fetch_parses_short_fractional_seconds() -> None:
    client = RecordingClient(
        rows=[
            {
                "id": "a1",
                "start_time": "2025-03-05T10:00:00.5+00:00",
                "end_time": "2025-03-05T10:45:00.25+00:00",
                "status": "scheduled",
                "client": {"full_name": "Ana Ruiz"},
                "stylist": {"full_name": "Mia Santos"},
                "service": {"name": "Haircut", "price": 55},
            }
        ]
    )

    (appointment,) = asyncio.run(AppointmentService(client).fetch_scheduled())

    assert appointment.start.microsecond == 500000
    assert appointment.end.microsecond == 250000
    assert appointment.start.utcoffset().total_seconds() == 0


def test_mock_fetch_wraps_unreadable_rows() -> None:
    store = get_mock_store()
    stylist, _, client, cut = _seed_salon(store)

    async def scenario():
        row = await store.appointments.insert(
            client_id=client,
            stylist_id=stylist,
            service_id=cut,
            start_time="2025-03-05T09:00:00+00:00",
            end_time="2025-03-05T09:45:00+00:00",
        )
        store.appointments._appointments[row["id"]]["start_time"] = "tomorrow"
        return await AppointmentService(MockLatencyClient()).fetch_scheduled()

    with pytest.raises(ServiceError, match="Failed to fetch appointments"):
        asyncio.run(scenario())
