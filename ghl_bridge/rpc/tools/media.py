"""Media library tools."""

from __future__ import annotations

import base64
import binascii

from pydantic import Field, field_validator

from ...ghl.client import GHLClient
from .base import ToolInput, tool

MAX_UPLOAD_BYTES = 25 * 1024 * 1024


class ListMedia(ToolInput):
    location_id: str = Field(description="The location ID to list media files for")
    type: str = Field(description='Media type to list (e.g., "image", "video", "file")')


class UploadMedia(ToolInput):
    location_id: str = Field(description="The GHL location ID")
    name: str = Field(description="File name")
    data: str = Field(description="Base64 encoded file data")
    type: str | None = Field(None, description="File MIME type (e.g., image/png, application/pdf)")

    @field_validator("data")
    @classmethod
    def check_data(cls, value: str) -> str:
        try:
            raw = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError("data must be base64 encoded") from e
        if len(raw) > MAX_UPLOAD_BYTES:
            raise ValueError("file exceeds the 25MB upload limit")
        return value


class MediaRef(ToolInput):
    media_id: str = Field(description="The media file ID to delete")
    location_id: str | None = Field(None, description="The GHL location ID owning the file")


@tool("ghl_list_media", "List media files for a location", ListMedia)
async def list_media(ghl: GHLClient, args: ListMedia):
    data = await ghl.get(
        "/medias/files",
        altId=args.location_id,
        altType="location",
        type=args.type,
    )
    medias = data.get("files") or data.get("medias") or []
    return {"success": True, "medias": medias, "count": len(medias)}


@tool("ghl_upload_media", "Upload a media file (max 25MB, base64 encoded)", UploadMedia)
async def upload_media(ghl: GHLClient, args: UploadMedia):
    content = base64.b64decode(args.data)
    return await ghl.upload(
        "/medias/upload-file",
        files={"file": (args.name, content, args.type or "application/octet-stream")},
        fields={"name": args.name, "hosted": "false"},
        altId=args.location_id,
        altType="location",
    )


@tool("ghl_delete_media", "Delete a media file", MediaRef)
async def delete_media(ghl: GHLClient, args: MediaRef):
    await ghl.call(
        "DELETE",
        f"/medias/{args.media_id}",
        params={"altId": args.location_id, "altType": "location" if args.location_id else None},
    )
    return {"success": True, "mediaId": args.media_id}


TOOLS = [list_media, upload_media, delete_media]
