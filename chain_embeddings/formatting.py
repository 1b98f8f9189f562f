"""
Shared formatting and timestamp helpers.

History transcripts, chain text and attachment descriptions all render
messages the same way; keeping the line formats here means the text fed to
the language model and the embedding model stays stable across components.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo

from .models import Attachment, ContextRef, MimeCategory

# Legacy wrapped descriptions look like
# "[Alice shared 'cat.png' in #general on <date>. Image description: <text>]"
_WRAPPER_PREFIX = re.compile(r"^\[.*?\. (Image|Audio|Video) description: ", re.DOTALL)
_WRAPPER_SUFFIX = re.compile(r"\]$")

_RENDERED_CATEGORIES = (MimeCategory.IMAGE, MimeCategory.AUDIO, MimeCategory.VIDEO)


def resolve_timezone(name: str | None) -> tzinfo:
    """Map a configured zone name to a tzinfo ("UTC" when unset)."""
    if not name or name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def _localize(dt: datetime, tz: tzinfo | None) -> datetime:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(tz or timezone.utc)


def format_date(dt: datetime, tz: tzinfo | None = None) -> str:
    """Human date used in transcript headers, e.g. "Thursday, 5 October 2023"."""
    local = _localize(dt, tz)
    return f"{local:%A}, {local.day} {local:%B %Y}"


def format_time(dt: datetime, tz: tzinfo | None = None) -> str:
    """24-hour clock time, e.g. "09:05"."""
    return f"{_localize(dt, tz):%H:%M}"


def format_timestamp(dt: datetime, tz: tzinfo | None = None, include_date: bool = True) -> str:
    """Date and time, e.g. "Thursday, 5 October 2023, 10:30"."""
    if not include_date:
        return format_time(dt, tz)
    return f"{format_date(dt, tz)}, {format_time(dt, tz)}"


def message_line(sender: str, created_at: datetime, content: str, tz: tzinfo | None = None) -> str:
    return f"[{sender}, {format_time(created_at, tz)}]: {content}"


_DATE_PREFIX = "Date: "


def date_header(created_at: datetime, tz: tzinfo | None = None) -> str:
    return f"{_DATE_PREFIX}{format_date(created_at, tz)}"


def is_date_header(line: str) -> bool:
    return line.startswith(_DATE_PREFIX)


def context_header(context: ContextRef, name: str | None) -> str:
    """First line of a transcript or chain naming where it was said."""
    if context.is_channel:
        return f"Channel: {name or '(unknown)'}"
    return f"Direct Message Recipient: {name or 'Unknown User'}"


def strip_description_wrapper(text: str) -> str:
    """Remove the sender/channel/date wrapper from a legacy description.

    Text that does not carry the wrapper is returned unchanged.
    """
    stripped, count = _WRAPPER_PREFIX.subn("", text, count=1)
    if not count:
        return text
    return _WRAPPER_SUFFIX.sub("", stripped, count=1)


def build_display_description(
    sender: str,
    file_name: str,
    where: str,
    shared_at: datetime,
    category: MimeCategory,
    description: str,
    tz: tzinfo | None = None,
) -> str:
    """Wrap a raw description with the metadata shown alongside the file."""
    when = format_timestamp(shared_at, tz)
    return (
        f"[{sender} shared '{file_name}' in {where} on {when}. "
        f"{category.label} description: {description}]"
    )


def raw_description(attachment: Attachment) -> str | None:
    """Raw describer text for an attachment, unwrapping legacy rows."""
    if attachment.description:
        return attachment.description
    if attachment.display_description:
        return strip_description_wrapper(attachment.display_description)
    return None


def attachment_line(attachment: Attachment) -> str | None:
    """`[Image: "name"] [Description: text]`, or None when nothing to render."""
    category = attachment.mime_category
    if category not in _RENDERED_CATEGORIES:
        return None
    description = raw_description(attachment)
    if not description:
        return None
    return f'[{category.label}: "{attachment.file_name}"] [Description: {description}]'
