"""Workflow tools (read-only; GHL exposes no workflow editing API)."""

from __future__ import annotations

from pydantic import Field

from ...ghl.client import GHLClient
from .base import ToolInput, tool


class LocationRef(ToolInput):
    location_id: str = Field(description="The GHL location ID")


class WorkflowRef(ToolInput):
    workflow_id: str = Field(description="The workflow ID to retrieve")


@tool("ghl_list_workflows", "List workflows in a location", LocationRef)
async def list_workflows(ghl: GHLClient, args: LocationRef):
    return await ghl.get("/workflows/", locationId=args.location_id)


@tool("ghl_get_workflow", "Get a workflow by ID", WorkflowRef)
async def get_workflow(ghl: GHLClient, args: WorkflowRef):
    return await ghl.get(f"/workflows/{args.workflow_id}")


TOOLS = [list_workflows, get_workflow]
