"""Render alert events as an email subject and HTML body."""

import html
import re
from dataclasses import dataclass
from datetime import datetime

from journalmon import __version__

from .batcher import AlertEvent
from .classifier import priority_color, priority_name

TIME_FORMAT = "%Y-%m-%d %H:%M:%S %Z"

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]+")

_LABEL_STYLE = (
    "color: #8b92a7; font-size: 13px; font-weight: 600; "
    "text-transform: uppercase; letter-spacing: 1px;"
)
_VALUE_STYLE = "color: #e0e0e0; font-size: 15px; font-weight: 500;"
_MONO = "font-family: 'Courier New', Consolas, monospace;"


@dataclass(frozen=True)
class RenderedAlert:
    subject: str
    body: str


def escape(text: str) -> str:
    """Escape &, <, >, " and ' for interpolation into HTML."""
    return html.escape(text, quote=True)


def render(event: AlertEvent, host: str) -> RenderedAlert:
    """Render an alert event.

    Args:
        event: Single-record or batched alert
        host: Name of the machine the records came from

    Returns:
        RenderedAlert with a single-line plain-text subject and an HTML body
    """
    return RenderedAlert(subject=render_subject(event, host), body=render_body(event, host))


def render_subject(event: AlertEvent, host: str) -> str:
    service = event.representative.service_id or "unknown"
    subject = f"[{priority_name(event.priority)}] System Alert: {service} on {host}"
    if event.batched:
        subject += f" ({event.count} occurrences)"
    # Subjects end up in mail headers
    return _CONTROL_CHARS.sub(" ", subject)


def render_body(event: AlertEvent, host: str) -> str:
    record = event.representative
    color = priority_color(event.priority)
    badge = priority_name(event.priority).upper()

    rows = [
        ("Host", escape(host), ""),
        ("Service", escape(record.service_id or "unknown"), _MONO),
        ("Unit", escape(record.unit or "N/A"), _MONO),
        ("Time", escape(_format_time(record.timestamp)), ""),
    ]
    if event.batched:
        rows += [
            ("Occurrences", str(event.count), ""),
            ("Last Seen", escape(_format_time(event.last_seen)), ""),
            ("Window", f"{event.window:g}s", ""),
        ]

    info_rows = "\n".join(_info_row(label, value, style) for label, value, style in rows)

    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <meta name="color-scheme" content="dark light">
    <title>System Error Alert</title>
</head>
<body style="margin: 0; padding: 0; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif; background: #1a1a2e; color: #e0e0e0;">
    <div style="max-width: 700px; margin: 40px auto; background: #0f1419; border-radius: 20px; overflow: hidden;">
        <div style="background: linear-gradient(135deg, {color} 0%, {color}88 100%); padding: 40px 30px; text-align: center;">
            <h1 style="margin: 0; font-size: 32px; font-weight: 700; color: white;">System Alert</h1>
            <p style="margin: 10px 0 0 0; color: rgba(255,255,255,0.9); font-size: 15px;">{_headline(event)}</p>
        </div>
        <div style="padding: 40px 30px;">
            <div style="margin-bottom: 30px;">
                <span style="display: inline-block; background: {color}; color: white; padding: 10px 20px; border-radius: 50px; font-size: 14px; font-weight: 600;">{badge}</span>
            </div>
            <div style="background: rgba(255,255,255,0.03); border-radius: 16px; padding: 25px; margin-bottom: 30px;">
                <table style="width: 100%; border-collapse: collapse;">
{info_rows}
                </table>
            </div>
            <div style="background: rgba(0,0,0,0.3); border-left: 4px solid {color}; border-radius: 12px; padding: 20px 24px; margin-bottom: 30px;">
                <div style="{_LABEL_STYLE} margin-bottom: 12px;">Message</div>
                <pre style="margin: 0; color: #f0f0f0; font-size: 14px; line-height: 1.6; {_MONO} white-space: pre-wrap; word-wrap: break-word;">{escape(record.message)}</pre>
            </div>
{_hint(record.unit)}
        </div>
        <div style="background: rgba(0,0,0,0.3); padding: 25px 30px; text-align: center;">
            <p style="margin: 0; color: #6b7280; font-size: 13px;">Automated alert from <strong style="color: #8b92a7;">journalmon v{__version__}</strong></p>
        </div>
    </div>
</body>
</html>
"""


def _headline(event: AlertEvent) -> str:
    if event.batched:
        return f"journalmon coalesced {event.count} entries within {event.window:g}s"
    return "journalmon detected an issue"


def _info_row(label: str, value: str, extra_style: str) -> str:
    return (
        "                    <tr>\n"
        f'                        <td style="padding: 12px 0;"><span style="{_LABEL_STYLE}">{label}</span></td>\n'
        f'                        <td style="padding: 12px 0; text-align: right;"><span style="{_VALUE_STYLE} {extra_style}">{value}</span></td>\n'
        "                    </tr>"
    )


def _hint(unit: str) -> str:
    if not unit:
        return ""
    return (
        '            <div style="border: 1px solid rgba(59, 130, 246, 0.2); border-radius: 12px; padding: 20px; text-align: center;">\n'
        f'                <code style="color: #60a5fa; font-size: 13px;">journalctl -u {escape(unit)} -n 50 --no-pager</code>\n'
        "            </div>"
    )


def _format_time(ts: datetime) -> str:
    return ts.astimezone().strftime(TIME_FORMAT)
