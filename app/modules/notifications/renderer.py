"""Template rendering for notifications.

Turns a NotificationPayload into a (subject, body) pair for a channel
type. Subjects are channel independent; bodies come from Jinja2
templates named ``{channel_type}_{message_type}.j2``:

- email: plain text
- chat_api: HTML (``<b>``, ``<code>``, ``<a href>``), user text escaped
- webhook: Markdown (``**bold**``, ``[text](url)``)

All templates are loaded once when the Renderer is built, so a missing
or broken template fails at startup rather than on the first delivery.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    Template,
    TemplateError,
)

from modules.notifications.channels import ChannelType
from modules.notifications.errors import RenderError, TemplateNotFoundError
from modules.notifications.models import MessageType, NotificationPayload

TEMPLATES_DIR = Path(__file__).parent / "templates"

STATUS_EMOJI = {
    "investigating": "🔍",
    "identified": "🔎",
    "monitoring": "👀",
    "resolved": "✅",
    "scheduled": "📅",
    "in_progress": "🔧",
    "completed": "✅",
}

SEVERITY_EMOJI = {
    "minor": "🟡",
    "major": "🟠",
    "critical": "🔴",
}

TYPE_EMOJI = {
    "incident": "🔴",
    "maintenance": "🔧",
}

SUBJECT_PREFIX = {
    MessageType.UPDATE.value: "Update",
    MessageType.RESOLVED.value: "Resolved",
    MessageType.COMPLETED.value: "Completed",
    MessageType.CANCELLED.value: "Cancelled",
}


def _value(member: Any) -> str:
    return str(getattr(member, "value", member))


def title(value: str) -> str:
    """Title-case a word or phrase ("in progress" -> "In Progress", "MAJOR" -> "Major")."""
    return (value or "").title()


def humanize(value: str) -> str:
    return (value or "").replace("_", " ")


def format_time(value: Optional[datetime]) -> str:
    """Format a timestamp as "Mar 15, 2024 14:30 UTC"; empty for None.

    Naive datetimes are taken to be UTC.
    """
    if value is None:
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return f"{value:%b} {value.day}, {value:%Y %H:%M} UTC"


def format_duration(value: timedelta) -> str:
    """Format a duration as "30s", "5m", "2h" or "1h 30m".

    Hours are not rolled into days, so 25.5 hours is "25h 30m".
    """
    total_seconds = int(value.total_seconds())
    if total_seconds < 60:
        return f"{total_seconds}s"

    hours, remainder = divmod(total_seconds, 3600)
    minutes = remainder // 60
    if hours > 0:
        if minutes > 0:
            return f"{hours}h {minutes}m"
        return f"{hours}h"
    return f"{minutes}m"


def status_emoji(status: str) -> str:
    return STATUS_EMOJI.get((status or "").lower(), "📋")


def severity_emoji(severity: str) -> str:
    return SEVERITY_EMOJI.get((severity or "").lower(), "⚪")


def type_emoji(event_type: str) -> str:
    return TYPE_EMOJI.get((event_type or "").lower(), "📋")


def render_subject(payload: NotificationPayload) -> str:
    """Build the channel independent subject line, e.g. "[Incident] API down"."""
    message_type = _value(payload.message_type)
    if message_type == MessageType.INITIAL.value:
        if payload.event.type == "incident":
            prefix = "Incident"
        else:
            prefix = "Scheduled Maintenance"
    else:
        prefix = SUBJECT_PREFIX.get(message_type, "Notification")
    return f"[{prefix}] {payload.event.title}"


def template_name(channel_type: Any, message_type: Any) -> str:
    return f"{_value(channel_type)}_{_value(message_type)}"


def build_environment(templates_dir: Path = TEMPLATES_DIR) -> Environment:
    """Create the Jinja2 environment with the notification filters installed.

    Autoescaping is off because two of the three formats are not HTML;
    the chat_api templates escape user text explicitly with ``|e``.
    """
    env = Environment(
        loader=FileSystemLoader(str(templates_dir)),
        undefined=StrictUndefined,
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters.update(
        {
            "title": title,
            "humanize": humanize,
            "format_time": format_time,
            "format_duration": format_duration,
            "status_emoji": status_emoji,
            "severity_emoji": severity_emoji,
            "type_emoji": type_emoji,
        }
    )
    return env


class Renderer:
    """Renders payloads for every channel type / message type pair.

    Attributes:
        templates: Compiled templates keyed by ``{channel_type}_{message_type}``

    Example:
        renderer = Renderer()
        subject, body = renderer.render(ChannelType.EMAIL, payload)
    """

    def __init__(self, environment: Optional[Environment] = None):
        self._env = environment or build_environment()
        self.templates: Dict[str, Template] = {}

        for channel_type in ChannelType:
            for message_type in MessageType:
                name = template_name(channel_type, message_type)
                try:
                    self.templates[name] = self._env.get_template(f"{name}.j2")
                except TemplateError as e:
                    raise RenderError(f"load template {name}: {e}") from e

    def render(
        self, channel_type: Any, payload: NotificationPayload
    ) -> Tuple[str, str]:
        """Render the subject and body for a channel type.

        Args:
            channel_type: ChannelType (or its string value)
            payload: Payload to render

        Returns:
            Tuple of (subject, body), body stripped of surrounding whitespace

        Raises:
            TemplateNotFoundError: No template for the pair
            RenderError: The template failed while rendering
        """
        subject = render_subject(payload)

        name = template_name(channel_type, payload.message_type)
        template = self.templates.get(name)
        if template is None:
            raise TemplateNotFoundError(name)

        try:
            body = template.render(payload=payload)
        except TemplateError as e:
            raise RenderError(f"execute template {name}: {e}") from e

        return subject, body.strip()
