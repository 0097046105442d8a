"""Structured logging helpers (PII-safe)."""

from typing import Any
from uuid import UUID


def build_log_context(
    *,
    tenant_id: UUID | str | None = None,
    booking_id: UUID | str | None = None,
    staff_id: UUID | str | None = None,
    service_id: UUID | str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict.

    Only identifiers are logged; customer names, phones and addresses never
    go into log records.
    """
    context: dict[str, Any] = {}
    if tenant_id:
        context["tenant_id"] = str(tenant_id)
    if booking_id:
        context["booking_id"] = str(booking_id)
    if staff_id:
        context["staff_id"] = str(staff_id)
    if service_id:
        context["service_id"] = str(service_id)
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context
