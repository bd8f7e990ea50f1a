"""Structured logging helpers (PII-safe)."""

from typing import Any
from uuid import UUID


def build_log_context(
    *,
    user_id: UUID | str | None = None,
    company_id: UUID | str | None = None,
    ticket_id: UUID | str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict (ids only, never names or content)."""
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = str(user_id)
    if company_id:
        context["company_id"] = str(company_id)
    if ticket_id:
        context["ticket_id"] = str(ticket_id)
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context
