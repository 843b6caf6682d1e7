"""Conversation and messaging tools."""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from ...ghl.client import GHLClient
from .base import ToolInput, tool


class ConversationRef(ToolInput):
    conversation_id: str = Field(description="The conversation ID")


class SearchConversations(ToolInput):
    location_id: str = Field(description="The GHL location ID")
    contact_id: str | None = Field(None, description="Only conversations with this contact")
    query: str | None = None
    limit: int = Field(20, ge=1, le=100)


class SendMessage(ToolInput):
    type: Literal["SMS", "Email", "WhatsApp", "GMB", "IG", "FB"] = Field(description="Message channel")
    message: str = Field(description="Message content")
    contact_id: str | None = Field(None, description="Recipient contact ID")
    conversation_id: str | None = Field(None, description="Existing conversation ID")
    subject: str | None = Field(None, description="Email subject")


@tool("ghl_get_conversation", "Get a conversation by ID", ConversationRef)
async def get_conversation(ghl: GHLClient, args: ConversationRef):
    return await ghl.get(f"/conversations/{args.conversation_id}")


@tool("ghl_search_conversations", "Search conversations in a location", SearchConversations)
async def search_conversations(ghl: GHLClient, args: SearchConversations):
    return await ghl.get(
        "/conversations/search",
        locationId=args.location_id,
        contactId=args.contact_id,
        query=args.query,
        limit=args.limit,
    )


@tool("ghl_send_message", "Send a message in a conversation", SendMessage)
async def send_message(ghl: GHLClient, args: SendMessage):
    return await ghl.post("/conversations/messages", args.payload())


@tool("ghl_get_messages", "List messages in a conversation", ConversationRef)
async def get_messages(ghl: GHLClient, args: ConversationRef):
    return await ghl.get(f"/conversations/{args.conversation_id}/messages")


TOOLS = [get_conversation, search_conversations, send_message, get_messages]
