"""Custom object tools."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from ...ghl.client import GHLClient
from .base import ToolInput, tool


class ListCustomObjects(ToolInput):
    location_id: str = Field(description="The location ID to list custom objects for")
    object_type: str | None = Field(None, description="Optional object type filter")


class CustomObjectRef(ToolInput):
    object_id: str = Field(description="The custom object ID")


class CreateCustomObject(ToolInput):
    location_id: str = Field(description="The GHL location ID")
    object_type: str = Field(description="Type of custom object")
    name: str = Field(description="Name of the custom object")
    data: dict[str, Any] | None = Field(None, description="Custom object data")


class UpdateCustomObject(ToolInput):
    object_id: str = Field(description="The custom object ID to update")
    name: str | None = Field(None, description="Updated name")
    data: dict[str, Any] | None = Field(None, description="Updated custom object data")


@tool("ghl_list_custom_objects", "List custom objects for a location with optional type filter", ListCustomObjects)
async def list_custom_objects(ghl: GHLClient, args: ListCustomObjects):
    return await ghl.get("/objects/", locationId=args.location_id, objectType=args.object_type)


@tool("ghl_get_custom_object", "Get a custom object by ID", CustomObjectRef)
async def get_custom_object(ghl: GHLClient, args: CustomObjectRef):
    return await ghl.get(f"/objects/{args.object_id}")


@tool("ghl_create_custom_object", "Create a new custom object", CreateCustomObject)
async def create_custom_object(ghl: GHLClient, args: CreateCustomObject):
    return await ghl.post("/objects/", args.payload())


@tool("ghl_update_custom_object", "Update an existing custom object", UpdateCustomObject)
async def update_custom_object(ghl: GHLClient, args: UpdateCustomObject):
    return await ghl.put(f"/objects/{args.object_id}", args.payload("object_id"))


@tool("ghl_delete_custom_object", "Delete a custom object", CustomObjectRef)
async def delete_custom_object(ghl: GHLClient, args: CustomObjectRef):
    await ghl.delete(f"/objects/{args.object_id}")
    return {"success": True, "objectId": args.object_id}


TOOLS = [
    list_custom_objects,
    get_custom_object,
    create_custom_object,
    update_custom_object,
    delete_custom_object,
]
