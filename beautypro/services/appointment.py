from __future__ import annotations

import logging
from typing import Any, Dict, List

from beautypro.clients.supabase import SupabaseClient
from beautypro.schemas.appointment import Appointment
from beautypro.services.exceptions import ServiceError
from beautypro.services.mock_store import AppointmentRepository, get_mock_store

logger = logging.getLogger(__name__)

APPOINTMENT_COLUMNS = """
    *,
    client:client_id(full_name, phone),
    stylist:stylist_id(full_name),
    service:service_id(name, price, category)
"""


def format_appointment(row: Dict[str, Any]) -> Appointment:
    """Flatten a joined ``appointments`` row into the calendar's event shape."""

    client = row.get("client") or {}
    stylist = row.get("stylist") or {}
    service = row.get("service") or {}
    client_name = client.get("full_name") or "Unknown Client"
    service_name = service.get("name") or "Unknown Service"
    return Appointment(
        id=str(row["id"]),
        title=f"{service_name} - {client_name}",
        start=row["start_time"],
        end=row["end_time"],
        client_name=client_name,
        stylist_name=stylist.get("full_name") or "Unknown Stylist",
        service_name=service_name,
        status=row["status"],
        notes=row.get("notes"),
        service_price=service.get("price") or 0,
        client_phone=client.get("phone"),
    )


class AppointmentService:
    def __init__(
        self,
        client: SupabaseClient,
        *,
        repository: AppointmentRepository | None = None,
    ) -> None:
        self._client = client
        self._repository = repository
        if self._client.use_mock_data:
            self._repository = repository or get_mock_store().appointments

    async def fetch_scheduled(self) -> List[Appointment]:
        """Scheduled appointments ordered by start time, with client, stylist and service joined."""

        logger.info("Fetching scheduled appointments")
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            if not self._repository:
                raise RuntimeError("Mock appointment repository not configured")

        try:
            if self._client.use_mock_data:
                rows = await self._repository.list_joined(status="scheduled")
            else:
                rows = await self._client.select(
                    "appointments",
                    columns=APPOINTMENT_COLUMNS,
                    filters={"status": "scheduled"},
                    order="start_time",
                )
            return [format_appointment(row) for row in rows]
        except ServiceError:
            raise
        except Exception as exc:
            logger.exception("Unexpected error while fetching appointments")
            raise ServiceError("Failed to fetch appointments", cause=exc)
