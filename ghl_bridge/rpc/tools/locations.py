"""Location (sub-account) tools."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from ...ghl.client import GHLClient
from .base import ToolInput, tool


class LocationRef(ToolInput):
    location_id: str = Field(description="The GHL location ID")


class UpdateLocation(ToolInput):
    location_id: str = Field(description="The location ID to update")
    name: str | None = Field(None, description="Updated location name")
    address: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    postal_code: str | None = None
    website: str | None = None
    email: str | None = None
    phone: str | None = None


class UpdateCustomValues(ToolInput):
    location_id: str = Field(description="The GHL location ID")
    custom_values: dict[str, Any] = Field(
        description="New values keyed by custom value ID",
        min_length=1,
    )


@tool("ghl_get_location", "Get location details", LocationRef)
async def get_location(ghl: GHLClient, args: LocationRef):
    return await ghl.get(f"/locations/{args.location_id}")


@tool("ghl_update_location", "Update location information", UpdateLocation)
async def update_location(ghl: GHLClient, args: UpdateLocation):
    return await ghl.put(f"/locations/{args.location_id}", args.payload("location_id"))


@tool("ghl_list_location_custom_fields", "List custom fields defined for a location", LocationRef)
async def list_custom_fields(ghl: GHLClient, args: LocationRef):
    return await ghl.get(f"/locations/{args.location_id}/customFields")


@tool("ghl_get_location_custom_values", "List custom values for a location", LocationRef)
async def get_custom_values(ghl: GHLClient, args: LocationRef):
    return await ghl.get(f"/locations/{args.location_id}/customValues")


@tool("ghl_update_location_custom_values", "Update custom values for a location", UpdateCustomValues)
async def update_custom_values(ghl: GHLClient, args: UpdateCustomValues):
    updated = {}
    for value_id, value in args.custom_values.items():
        updated[value_id] = await ghl.put(
            f"/locations/{args.location_id}/customValues/{value_id}",
            {"value": value},
        )
    return {"success": True, "updated": updated}


TOOLS = [get_location, update_location, list_custom_fields, get_custom_values, update_custom_values]
