"""
Attachment descriptions.

Analysing images, audio and video is done by an external describer. This
module defines that collaborator's interface and records what it returns:
the caption, the raw description, and a display description wrapped with
who shared the file, where and when. Raw and display text are stored in
separate fields so the history formatter never has to parse the wrapper.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, tzinfo

from .exceptions import ChainIndexError
from .formatting import build_display_description
from .models import Attachment, MimeCategory
from .store.base import MessageStore

logger = logging.getLogger(__name__)


@dataclass
class AttachmentDescription:
    caption: str | None
    description: str | None


class AttachmentDescriber(ABC):
    """External analyser producing a caption and description for a file."""

    @abstractmethod
    async def describe(self, attachment: Attachment) -> AttachmentDescription:
        pass


class AttachmentDescriptionRecorder:
    """Runs the describer for an attachment and stores its output."""

    def __init__(
        self,
        store: MessageStore,
        describer: AttachmentDescriber,
        tz: tzinfo | None = None,
    ):
        self.store = store
        self.describer = describer
        self.tz = tz

    async def record(
        self,
        attachment_id: str,
        sender: str,
        where: str,
        shared_at: datetime,
    ) -> Attachment | None:
        """
        Describe one attachment and persist caption, raw and display description.

        Args:
            attachment_id: Attachment to describe
            sender: Display name of whoever shared the file
            where: Location label, e.g. "#general" or "a direct message"
            shared_at: When the file was shared

        Returns:
            The updated attachment, or None when it is missing, not describable,
            or the describer/store failed (logged, never raised).
        """
        attachment = await self.store.get_attachment(attachment_id)
        if attachment is None:
            logger.warning(f"Attachment {attachment_id} not found, skipping description")
            return None

        category = attachment.mime_category
        if category is MimeCategory.OTHER:
            logger.debug(f"Attachment {attachment_id} ({attachment.mime_type}) is not describable")
            return None

        try:
            result = await self.describer.describe(attachment)
        except Exception as e:
            logger.error(f"Describer failed for attachment {attachment_id}: {e}")
            return None

        display = None
        if result.description:
            display = build_display_description(
                sender,
                attachment.file_name,
                where,
                shared_at,
                category,
                result.description,
                self.tz,
            )

        try:
            await self.store.update_attachment_description(
                attachment_id, result.caption, result.description, display
            )
        except ChainIndexError as e:
            logger.error(f"Failed to store description for attachment {attachment_id}: {e}")
            return None

        attachment.caption = result.caption
        attachment.description = result.description
        attachment.display_description = display
        logger.info(f"Recorded {category.value} description for attachment {attachment_id}")
        return attachment
