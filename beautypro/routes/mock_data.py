"""Routes for browsing and mutating the in-memory backend used in mock mode."""
from __future__ import annotations

import html
import json
from typing import Any, Dict, Iterable, List, Mapping

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse

from beautypro.clients.supabase import SupabaseClient
from beautypro.dependencies.services import get_supabase_client
from beautypro.schemas.appointment import AppointmentPatch
from beautypro.services.mock_store import get_mock_store

router = APIRouter()


def _require_mock_mode(client: SupabaseClient = Depends(get_supabase_client)) -> None:
    if not client.use_mock_data:
        raise HTTPException(status_code=404, detail="Mock data is disabled")


def _stringify(value: Any) -> str:
    """Return a JSON-friendly string representation for table cells."""
    if value is None:
        return ""
    if isinstance(value, (str, int, float, bool)):
        return str(value)
    return json.dumps(value, default=str)


def _build_table(title: str, rows: Iterable[Mapping[str, Any]]) -> str:
    row_list: List[Dict[str, Any]] = [dict(row) for row in rows]
    section_parts = [f"<section><h2>{html.escape(title)}</h2>"]
    if not row_list:
        section_parts.append("<p>No records found.</p></section>")
        return "".join(section_parts)

    columns: List[str] = []
    for row in row_list:
        for key in row.keys():
            if key not in columns:
                columns.append(key)

    header = "".join(f"<th>{html.escape(column)}</th>" for column in columns)
    body_rows = [
        "<tr>"
        + "".join(f"<td>{html.escape(_stringify(row.get(column)))}</td>" for column in columns)
        + "</tr>"
        for row in row_list
    ]
    section_parts.append(
        f"<table><thead><tr>{header}</tr></thead><tbody>{''.join(body_rows)}</tbody></table>"
    )
    section_parts.append("</section>")
    return "".join(section_parts)


@router.get("/mock-data", response_class=HTMLResponse, dependencies=[Depends(_require_mock_mode)])
async def view_mock_data() -> HTMLResponse:
    """Render the mock tables as HTML."""
    store = get_mock_store()

    sections = [
        _build_table("Profiles", await store.profiles.list()),
        _build_table("Services", await store.services.list()),
        _build_table("Appointments", await store.appointments.list_joined()),
    ]

    sections_html = "".join(sections)
    html_content = f"""
    <html>
        <head>
            <title>Mock Data Overview</title>
            <style>
                body {{ font-family: Arial, sans-serif; margin: 2rem; }}
                section {{ margin-bottom: 2rem; }}
                table {{ border-collapse: collapse; width: 100%; }}
                th, td {{ border: 1px solid #ccc; padding: 0.5rem; text-align: left; }}
                th {{ background-color: #f0f0f0; }}
            </style>
        </head>
        <body>
            <h1>Mock Data Overview</h1>
            {sections_html}
        </body>
    </html>
    """
    return HTMLResponse(content=html_content)


@router.patch("/mock-data/appointments/{appointment_id}", dependencies=[Depends(_require_mock_mode)])
async def update_mock_appointment(appointment_id: str, patch: AppointmentPatch) -> Dict[str, Any]:
    """Change an appointment row; subscribers receive an UPDATE event."""
    changes = patch.model_dump(mode="json", exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No changes supplied")
    updated = await get_mock_store().appointments.update(appointment_id, changes)
    if updated is None:
        raise HTTPException(status_code=404, detail="Record not found")
    return updated


@router.delete("/mock-data/appointments/{appointment_id}", dependencies=[Depends(_require_mock_mode)])
async def delete_mock_appointment(appointment_id: str) -> Dict[str, str]:
    """Remove an appointment row; subscribers receive a DELETE event."""
    deleted = await get_mock_store().appointments.delete(appointment_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Record not found")
    return {"status": "deleted", "collection": "appointments", "record_id": appointment_id}
