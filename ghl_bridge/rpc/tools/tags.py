"""Location tag tools."""

from __future__ import annotations

from pydantic import Field

from ...ghl.client import GHLClient
from .base import ToolInput, tool


class LocationRef(ToolInput):
    location_id: str = Field(description="The GHL location ID")


class CreateTag(ToolInput):
    location_id: str = Field(description="The GHL location ID")
    name: str = Field(description="Tag name")


class DeleteTag(ToolInput):
    location_id: str = Field(description="The GHL location ID")
    tag_id: str = Field(description="The tag ID to delete")


@tool("ghl_list_tags", "List all tags in a location", LocationRef)
async def list_tags(ghl: GHLClient, args: LocationRef):
    return await ghl.get(f"/locations/{args.location_id}/tags")


@tool("ghl_create_tag", "Create a tag in a location", CreateTag)
async def create_tag(ghl: GHLClient, args: CreateTag):
    return await ghl.post(f"/locations/{args.location_id}/tags", {"name": args.name})


@tool("ghl_delete_tag", "Delete a tag from a location", DeleteTag)
async def delete_tag(ghl: GHLClient, args: DeleteTag):
    return await ghl.delete(f"/locations/{args.location_id}/tags/{args.tag_id}")


TOOLS = [list_tags, create_tag, delete_tag]
