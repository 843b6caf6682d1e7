"""Opportunity (deal) tools and pipeline listing."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from ...ghl.client import GHLClient
from .base import ToolInput, tool


class OpportunityRef(ToolInput):
    opportunity_id: str = Field(description="The opportunity ID")


class SearchOpportunities(ToolInput):
    location_id: str = Field(description="The GHL location ID")
    pipeline_id: str | None = Field(None, description="Filter by pipeline")
    pipeline_stage_id: str | None = Field(None, description="Filter by pipeline stage")
    status: str | None = Field(None, description="open, won, lost or abandoned")
    query: str | None = Field(None, description="Search query")
    limit: int = Field(20, ge=1, le=100)


class CreateOpportunity(ToolInput):
    location_id: str = Field(description="The GHL location ID")
    name: str = Field(description="Opportunity name")
    pipeline_id: str = Field(description="Pipeline ID")
    pipeline_stage_id: str = Field(description="Pipeline stage ID")
    contact_id: str | None = Field(None, description="Associated contact ID")
    monetary_value: float | None = Field(None, description="Deal value")
    status: str | None = Field(None, description="Opportunity status")
    assigned_to: str | None = Field(None, description="Assigned user ID")
    source: str | None = Field(None, description="Lead source")
    custom_fields: list[dict[str, Any]] | None = Field(None, description="Custom field values")


class UpdateOpportunity(ToolInput):
    opportunity_id: str = Field(description="The opportunity ID to update")
    name: str | None = None
    pipeline_id: str | None = None
    pipeline_stage_id: str | None = None
    status: str | None = None
    monetary_value: float | None = None
    assigned_to: str | None = None
    custom_fields: list[dict[str, Any]] | None = None


class LocationRef(ToolInput):
    location_id: str = Field(description="The GHL location ID")


@tool("ghl_get_opportunity", "Get an opportunity by ID", OpportunityRef)
async def get_opportunity(ghl: GHLClient, args: OpportunityRef):
    return await ghl.get(f"/opportunities/{args.opportunity_id}")


@tool("ghl_search_opportunities", "Search opportunities in a location", SearchOpportunities)
async def search_opportunities(ghl: GHLClient, args: SearchOpportunities):
    # The search endpoint takes snake_case query parameters
    return await ghl.get(
        "/opportunities/search",
        location_id=args.location_id,
        pipeline_id=args.pipeline_id,
        pipeline_stage_id=args.pipeline_stage_id,
        status=args.status,
        q=args.query,
        limit=args.limit,
    )


@tool("ghl_create_opportunity", "Create a new opportunity", CreateOpportunity)
async def create_opportunity(ghl: GHLClient, args: CreateOpportunity):
    return await ghl.post("/opportunities/", args.payload())


@tool("ghl_update_opportunity", "Update an existing opportunity", UpdateOpportunity)
async def update_opportunity(ghl: GHLClient, args: UpdateOpportunity):
    return await ghl.put(f"/opportunities/{args.opportunity_id}", args.payload("opportunity_id"))


@tool("ghl_delete_opportunity", "Delete an opportunity", OpportunityRef)
async def delete_opportunity(ghl: GHLClient, args: OpportunityRef):
    return await ghl.delete(f"/opportunities/{args.opportunity_id}")


@tool("ghl_list_pipelines", "List opportunity pipelines and their stages", LocationRef)
async def list_pipelines(ghl: GHLClient, args: LocationRef):
    return await ghl.get("/opportunities/pipelines", locationId=args.location_id)


TOOLS = [
    get_opportunity,
    search_opportunities,
    create_opportunity,
    update_opportunity,
    delete_opportunity,
    list_pipelines,
]
