"""Form and form submission tools."""

from __future__ import annotations

from pydantic import Field

from ...ghl.client import GHLClient
from .base import ToolInput, tool


class LocationRef(ToolInput):
    location_id: str = Field(description="The GHL location ID")


class FormRef(ToolInput):
    form_id: str = Field(description="The form ID to retrieve")


class ListSubmissions(ToolInput):
    location_id: str = Field(description="The GHL location ID")
    form_id: str | None = Field(None, description="Only submissions of this form")
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)


@tool("ghl_list_forms", "List forms in a location", LocationRef)
async def list_forms(ghl: GHLClient, args: LocationRef):
    return await ghl.get("/forms/", locationId=args.location_id)


@tool("ghl_get_form", "Get a form by ID", FormRef)
async def get_form(ghl: GHLClient, args: FormRef):
    return await ghl.get(f"/forms/{args.form_id}")


@tool("ghl_list_form_submissions", "List form submissions", ListSubmissions)
async def list_form_submissions(ghl: GHLClient, args: ListSubmissions):
    return await ghl.get(
        "/forms/submissions",
        locationId=args.location_id,
        formId=args.form_id,
        page=args.page,
        limit=args.limit,
    )


TOOLS = [list_forms, get_form, list_form_submissions]
