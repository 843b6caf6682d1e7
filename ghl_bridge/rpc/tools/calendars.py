"""Calendar and appointment tools."""

from __future__ import annotations

from pydantic import Field

from ...ghl.client import GHLClient
from .base import ToolInput, tool


class LocationRef(ToolInput):
    location_id: str = Field(description="The GHL location ID")


class CalendarRef(ToolInput):
    calendar_id: str = Field(description="The calendar ID")


class ListEvents(ToolInput):
    location_id: str = Field(description="The GHL location ID")
    calendar_id: str | None = Field(None, description="Only events on this calendar")
    start_time: str = Field(description="Range start (epoch millis)")
    end_time: str = Field(description="Range end (epoch millis)")


class CreateAppointment(ToolInput):
    location_id: str = Field(description="The GHL location ID")
    calendar_id: str = Field(description="The calendar ID")
    contact_id: str = Field(description="Contact ID for the appointment")
    start_time: str = Field(description="Start time (ISO 8601)")
    end_time: str | None = Field(None, description="End time (ISO 8601)")
    title: str | None = None
    appointment_status: str | None = Field(None, description="confirmed, new, cancelled, ...")
    assigned_user_id: str | None = None


class UpdateAppointment(ToolInput):
    event_id: str = Field(description="The appointment ID to update")
    start_time: str | None = None
    end_time: str | None = None
    title: str | None = None
    appointment_status: str | None = None
    assigned_user_id: str | None = None


class EventRef(ToolInput):
    event_id: str = Field(description="The calendar event ID")


@tool("ghl_list_calendars", "List calendars in a location", LocationRef)
async def list_calendars(ghl: GHLClient, args: LocationRef):
    return await ghl.get("/calendars/", locationId=args.location_id)


@tool("ghl_get_calendar", "Get a calendar by ID", CalendarRef)
async def get_calendar(ghl: GHLClient, args: CalendarRef):
    return await ghl.get(f"/calendars/{args.calendar_id}")


@tool("ghl_list_calendar_events", "List calendar events in a time range", ListEvents)
async def list_calendar_events(ghl: GHLClient, args: ListEvents):
    return await ghl.get(
        "/calendars/events",
        locationId=args.location_id,
        calendarId=args.calendar_id,
        startTime=args.start_time,
        endTime=args.end_time,
    )


@tool("ghl_create_appointment", "Book an appointment on a calendar", CreateAppointment)
async def create_appointment(ghl: GHLClient, args: CreateAppointment):
    return await ghl.post("/calendars/events/appointments", args.payload())


@tool("ghl_update_appointment", "Update an existing appointment", UpdateAppointment)
async def update_appointment(ghl: GHLClient, args: UpdateAppointment):
    return await ghl.put(f"/calendars/events/appointments/{args.event_id}", args.payload("event_id"))


@tool("ghl_delete_calendar_event", "Delete a calendar event or appointment", EventRef)
async def delete_calendar_event(ghl: GHLClient, args: EventRef):
    return await ghl.delete(f"/calendars/events/{args.event_id}")


TOOLS = [
    list_calendars,
    get_calendar,
    list_calendar_events,
    create_appointment,
    update_appointment,
    delete_calendar_event,
]
