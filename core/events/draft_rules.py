"""
core.events.draft_rules

Pure rules applied to an EventDraft before it is committed:

  - validate_draft: first failing completeness / consistency rule, or None
  - apply_default_end_time: fill a missing end time from the default duration
  - render_preview: multi-line, human readable summary for confirmation

Timestamps are ISO 8601 strings. A timestamp without an offset is read in
the configured timezone; one with an offset keeps its instant and is
converted to the configured timezone for display.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional, Union
from zoneinfo import ZoneInfo

from configs.settings import settings
from runtime.models.session_models import ENTITY_TYPES, EventDraft


# Minimum lead time between "now" and an event start.
START_GRACE = timedelta(seconds=60)

PREVIEW_DATE_FORMAT = "%d %b %Y %H:%M"
PREVIEW_TIME_FORMAT = "%H:%M"

TzLike = Union[str, ZoneInfo, None]


def _zone(tz: TzLike) -> ZoneInfo:
    if tz is None:
        return ZoneInfo(settings.timezone)
    if isinstance(tz, ZoneInfo):
        return tz
    return ZoneInfo(tz)


def parse_timestamp(value: Optional[str], tz: TzLike = None) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp into an aware datetime in ``tz``.

    Returns None for missing or malformed input.
    """
    if not value or not isinstance(value, str):
        return None
    zone = _zone(tz)
    try:
        parsed = datetime.fromisoformat(value.strip())
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=zone)
        localized = parsed.astimezone(zone)
        # Instants near datetime.min / datetime.max must survive a UTC round trip.
        localized.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        return None
    return localized


def validate_draft(
    draft: EventDraft,
    *,
    now: Optional[datetime] = None,
    tz: TzLike = None,
    schedulable_channel_ids: Optional[Iterable[str]] = None,
) -> Optional[str]:
    """Return the first failing rule's message, or None if the draft is complete.

    ``schedulable_channel_ids`` is the set of voice / stage channels the
    platform reports; when given, a VOICE / STAGE draft must point at one.
    """
    zone = _zone(tz)

    if not (draft.name or "").strip():
        return "Missing event name."
    if not draft.scheduled_start_time:
        return "Missing start time."
    if not draft.entity_type:
        return "Missing entity type."
    if draft.entity_type not in ENTITY_TYPES:
        return f"Unsupported entity type: {draft.entity_type}."

    start = parse_timestamp(draft.scheduled_start_time, zone)
    if start is None:
        return "Start time is not a valid ISO timestamp."

    current = now if now is not None else datetime.now(zone)
    if current.tzinfo is None:
        current = current.replace(tzinfo=zone)
    if start < current + START_GRACE:
        return "Start time must be in the future."

    if draft.scheduled_end_time:
        end = parse_timestamp(draft.scheduled_end_time, zone)
        if end is None:
            return "End time is not a valid ISO timestamp."
        if end <= start:
            return "End time must be after start time."

    if draft.entity_type == "EXTERNAL":
        if not (draft.location or "").strip():
            return "External events require a location."
    else:
        channel_id = (draft.channel_id or "").strip()
        if not channel_id:
            return "Voice/Stage events require a channelId."
        if schedulable_channel_ids is not None and channel_id not in set(schedulable_channel_ids):
            return f"Channel {channel_id} is not a schedulable voice/stage channel."

    return None


def apply_default_end_time(
    draft: EventDraft,
    *,
    duration_minutes: Optional[int] = None,
    tz: TzLike = None,
) -> EventDraft:
    """Return the draft with an end time, defaulting to start + duration.

    A draft that already has an end time, or whose start cannot be parsed,
    is returned unchanged.
    """
    if draft.scheduled_end_time:
        return draft

    start = parse_timestamp(draft.scheduled_start_time, tz)
    if start is None:
        return draft

    if duration_minutes is None:
        duration_minutes = settings.default_event_duration_minutes
    try:
        end = (start + timedelta(minutes=duration_minutes)).isoformat()
    except OverflowError:
        return draft
    return draft.model_copy(update={"scheduled_end_time": end})


def render_preview(draft: EventDraft, *, tz: TzLike = None) -> str:
    zone = _zone(tz)
    zone_name = zone.key

    start = parse_timestamp(draft.scheduled_start_time, zone)
    end = parse_timestamp(draft.scheduled_end_time, zone)

    if start is None:
        when = f"{draft.scheduled_start_time or '(missing start)'} ({zone_name})"
    elif end is not None:
        when = (
            f"{start.strftime(PREVIEW_DATE_FORMAT)}–{end.strftime(PREVIEW_TIME_FORMAT)}"
            f" ({zone_name})"
        )
    else:
        when = f"{start.strftime(PREVIEW_DATE_FORMAT)} ({zone_name})"

    if draft.entity_type == "EXTERNAL":
        where = f"External: {draft.location or '(missing location)'}"
    else:
        where = f"{draft.entity_type}: <#{draft.channel_id or 'missing'}>"

    lines = [
        "**Event preview**",
        f"**Name:** {draft.name}",
        f"**Description:** {draft.description}" if draft.description else None,
        f"**When:** {when}",
        f"**Where:** {where}",
    ]
    return "\n".join(line for line in lines if line)
