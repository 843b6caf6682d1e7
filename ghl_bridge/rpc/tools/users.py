"""User tools."""

from __future__ import annotations

from pydantic import Field

from ...ghl.client import GHLClient
from .base import ToolInput, tool


class LocationRef(ToolInput):
    location_id: str = Field(description="The GHL location ID")


class UserRef(ToolInput):
    user_id: str = Field(description="The user ID")


class UpdateUser(ToolInput):
    user_id: str = Field(description="The user ID to update")
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    role: str | None = Field(None, description="Updated role")


@tool("ghl_list_users", "List users with access to a location", LocationRef)
async def list_users(ghl: GHLClient, args: LocationRef):
    return await ghl.get("/users/", locationId=args.location_id)


@tool("ghl_get_user", "Get a user by ID", UserRef)
async def get_user(ghl: GHLClient, args: UserRef):
    return await ghl.get(f"/users/{args.user_id}")


@tool("ghl_update_user", "Update a user", UpdateUser)
async def update_user(ghl: GHLClient, args: UpdateUser):
    return await ghl.put(f"/users/{args.user_id}", args.payload("user_id"))


TOOLS = [list_users, get_user, update_user]
