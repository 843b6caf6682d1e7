"""Contact tools: CRUD, search and tagging."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from ...ghl.client import GHLClient
from .base import ToolInput, tool


class CreateContact(ToolInput):
    location_id: str = Field(description="The GHL location ID")
    first_name: str | None = Field(None, description="Contact first name")
    last_name: str | None = Field(None, description="Contact last name")
    email: str | None = Field(None, description="Contact email address")
    phone: str | None = Field(None, description="Contact phone number")
    tags: list[str] | None = Field(None, description="Tags to apply to the contact")
    source: str | None = Field(None, description="Lead source")
    custom_fields: list[dict[str, Any]] | None = Field(None, description="Custom field values")


class UpdateContact(ToolInput):
    contact_id: str = Field(description="The contact ID to update")
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    tags: list[str] | None = None
    custom_fields: list[dict[str, Any]] | None = None


class ContactRef(ToolInput):
    contact_id: str = Field(description="The contact ID")


class SearchContacts(ToolInput):
    location_id: str = Field(description="The GHL location ID to search in")
    query: str | None = Field(None, description="Search query (email, phone, or name)")
    limit: int = Field(20, ge=1, le=100, description="Max contacts to return")


class ContactTag(ToolInput):
    contact_id: str = Field(description="The contact ID")
    tag: str = Field(description="Tag name")


@tool("ghl_create_contact", "Create a new contact in GoHighLevel", CreateContact)
async def create_contact(ghl: GHLClient, args: CreateContact):
    return await ghl.post("/contacts/", args.payload())


@tool("ghl_update_contact", "Update an existing contact", UpdateContact)
async def update_contact(ghl: GHLClient, args: UpdateContact):
    return await ghl.put(f"/contacts/{args.contact_id}", args.payload("contact_id"))


@tool("ghl_get_contact", "Get a contact by ID", ContactRef)
async def get_contact(ghl: GHLClient, args: ContactRef):
    return await ghl.get(f"/contacts/{args.contact_id}")


@tool("ghl_search_contacts", "Search contacts in a location", SearchContacts)
async def search_contacts(ghl: GHLClient, args: SearchContacts):
    return await ghl.get("/contacts/", locationId=args.location_id, query=args.query, limit=args.limit)


@tool("ghl_delete_contact", "Delete a contact", ContactRef)
async def delete_contact(ghl: GHLClient, args: ContactRef):
    return await ghl.delete(f"/contacts/{args.contact_id}")


@tool("ghl_add_tag", "Add a tag to a contact", ContactTag)
async def add_tag(ghl: GHLClient, args: ContactTag):
    return await ghl.post(f"/contacts/{args.contact_id}/tags", {"tags": [args.tag]})


@tool("ghl_remove_tag", "Remove a tag from a contact", ContactTag)
async def remove_tag(ghl: GHLClient, args: ContactTag):
    return await ghl.delete(f"/contacts/{args.contact_id}/tags", {"tags": [args.tag]})


TOOLS = [
    create_contact,
    update_contact,
    get_contact,
    search_contacts,
    delete_contact,
    add_tag,
    remove_tag,
]
