"""
Pydantic data models for the chat export pipeline.

RawEvent is what the transport hands us (one chat event, tagged by content
type). ExportRecord is the immutable unit written to sinks.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ChannelInfo(BaseModel):
    """A conversation as listed by the transport."""

    id: str
    name: str
    topic_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        if self.topic_name:
            return f"{self.name}#{self.topic_name}"
        return self.name


class Sender(BaseModel):
    uid: str
    username: Optional[str] = None
    device_id: str
    device_name: Optional[str] = None


# --- Event content variants ---


class TextBody(BaseModel):
    body: str
    reply_to: Optional[int] = None


class AttachmentBody(BaseModel):
    filename: str
    title: str = ""
    path: Optional[str] = None
    asset_type: Optional[str] = None


class ReactionBody(BaseModel):
    body: str
    message_id: int


class SystemBody(BaseModel):
    text: str
    system_type: Optional[str] = None


class HeadlineBody(BaseModel):
    headline: str


class EditBody(BaseModel):
    message_id: int
    body: str


class DeleteBody(BaseModel):
    message_ids: list[int] = Field(default_factory=list)


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: Optional[TextBody] = None


class AttachmentContent(BaseModel):
    type: Literal["attachment"] = "attachment"
    attachment: Optional[AttachmentBody] = None


class ReactionContent(BaseModel):
    type: Literal["reaction"] = "reaction"
    reaction: Optional[ReactionBody] = None


class SystemContent(BaseModel):
    type: Literal["system"] = "system"
    system: Optional[SystemBody] = None


class HeadlineContent(BaseModel):
    type: Literal["headline"] = "headline"
    headline: Optional[HeadlineBody] = None


class EditContent(BaseModel):
    type: Literal["edit"] = "edit"
    edit: Optional[EditBody] = None


class DeleteContent(BaseModel):
    type: Literal["delete"] = "delete"
    delete: Optional[DeleteBody] = None


EventContent = Annotated[
    Union[
        TextContent,
        AttachmentContent,
        ReactionContent,
        SystemContent,
        HeadlineContent,
        EditContent,
        DeleteContent,
    ],
    Field(discriminator="type"),
]


class RawEvent(BaseModel):
    """One event from the chat transport.

    Ids are unique per channel and increase with send time. Edit and delete
    events reference the ids of earlier messages.
    """

    id: int
    sent_at: int
    sender: Sender
    content: EventContent
    revoked_device: bool = False
    reactions: Optional[dict[str, list[str]]] = None

    @property
    def kind(self) -> str:
        return self.content.type

    @property
    def is_alteration(self) -> bool:
        return self.content.type in ("edit", "delete")


# --- Output ---


class AttachmentDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: Optional[str] = None
    asset_type: Optional[str] = None
    filename: Optional[str] = None


class ExportRecord(BaseModel):
    """Final state of one message, ready for the sinks."""

    model_config = ConfigDict(frozen=True)

    id: int
    text: Optional[str] = None
    reply_to: Optional[int] = None
    attachment: Optional[AttachmentDescriptor] = None
    reactions: Optional[dict[str, list[str]]] = None
    sent_at: int
    sender_uid: str
    sender_username: Optional[str] = None
    device_id: str
    device_name: Optional[str] = None
    revoked_device: bool = False
    edited: bool = False
    special: bool = False
    system: bool = False

    def to_document(self, channel_name: str) -> dict:
        """JSON-ready dict with the channel name injected."""
        doc = self.model_dump(mode="json", exclude_none=True)
        doc["channel_name"] = channel_name
        return doc


@dataclass(frozen=True)
class AttachmentJob:
    channel: ChannelInfo
    message_id: int
    destination: Path
