"""
Normalization of raw transport events into export records.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

from .config import AttachmentsConfig, MessageTypesConfig
from .errors import MalformedEventError
from .models import (
    AttachmentDescriptor,
    AttachmentJob,
    ChannelInfo,
    ExportRecord,
    RawEvent,
)

_UNSAFE_PATH_CHARS = re.compile(r"[^\w.,@+-]+")


def channel_slug(channel_name: str) -> str:
    """Filesystem/index-safe form of a channel name ("team#topic" -> "team__topic")."""
    return _UNSAFE_PATH_CHARS.sub("_", channel_name.replace("#", "__"))


class RecordConverter:
    """Turns non-alteration events into ExportRecords.

    Which optional event types produce records is governed by
    ``MessageTypesConfig``; attachment captions and download paths by
    ``AttachmentsConfig``.
    """

    def __init__(
        self,
        message_types: Optional[MessageTypesConfig] = None,
        attachments: Optional[AttachmentsConfig] = None,
    ):
        self._types = message_types or MessageTypesConfig()
        self._attachments = attachments or AttachmentsConfig()

    def convert(self, event: RawEvent, channel: ChannelInfo) -> ExportRecord | None:
        """Build the record for ``event``.

        Returns None for edits, deletes and disabled event types.

        Raises:
            MalformedEventError: the event lacks its type's payload
        """
        content = event.content
        fields: dict = {}

        if content.type == "text":
            if content.text is None:
                raise MalformedEventError(event.id, "text", "missing text body")
            fields["text"] = content.text.body
            fields["reply_to"] = content.text.reply_to

        elif content.type == "attachment":
            obj = content.attachment
            if obj is None:
                raise MalformedEventError(event.id, "attachment", "missing attachment object")
            path = obj.path
            if self._attachments.download:
                path = str(self.attachment_path(channel, event.id, obj.filename))
            fields["attachment"] = AttachmentDescriptor(
                path=path, asset_type=obj.asset_type, filename=obj.filename
            )
            fields["text"] = self._caption(obj.filename, obj.title)

        elif content.type == "reaction":
            if not self._types.reaction_messages:
                return None
            if content.reaction is None:
                raise MalformedEventError(event.id, "reaction", "missing reaction body")
            fields["text"] = content.reaction.body
            fields["reply_to"] = content.reaction.message_id
            fields["special"] = True

        elif content.type == "system":
            if not self._types.system_messages:
                return None
            if content.system is None:
                raise MalformedEventError(event.id, "system", "missing system notice")
            fields["text"] = content.system.text
            fields["system"] = True

        elif content.type == "headline":
            if not self._types.headline:
                return None
            if content.headline is None:
                raise MalformedEventError(event.id, "headline", "missing headline")
            fields["text"] = f"[Headline] {content.headline.headline}"
            fields["special"] = True

        else:
            # edit / delete
            return None

        if self._types.reactions and event.reactions:
            fields["reactions"] = event.reactions

        return ExportRecord(
            id=event.id,
            sent_at=event.sent_at,
            sender_uid=event.sender.uid,
            sender_username=event.sender.username,
            device_id=event.sender.device_id,
            device_name=event.sender.device_name,
            revoked_device=event.revoked_device,
            **fields,
        )

    def attachment_path(self, channel: ChannelInfo, message_id: int, filename: str) -> Path:
        name = Path(filename).name or "attachment"
        return (
            Path(self._attachments.directory)
            / channel_slug(channel.display_name)
            / f"{message_id}_{name}"
        )

    def attachment_job(self, channel: ChannelInfo, record: ExportRecord) -> AttachmentJob | None:
        """Download job for the record's attachment, if downloads are enabled."""
        if not self._attachments.download or record.attachment is None:
            return None
        if record.attachment.path is None:
            return None
        return AttachmentJob(
            channel=channel, message_id=record.id, destination=Path(record.attachment.path)
        )

    def _caption(self, filename: str, title: str) -> str:
        if not self._attachments.add_stub:
            return title
        space = "" if title == "" else " "
        return f"[Attachment {filename}]{space}{title}"
