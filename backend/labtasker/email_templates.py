"""Email template rendering.

Templates return both a plain-text and an HTML body. Values are escaped
before they go into HTML.
"""

from dataclasses import dataclass
from html import escape


@dataclass
class RenderedEmail:
    """Rendered email bodies."""

    text: str
    html: str


def paragraph(text: str) -> str:
    """Escape text and wrap it in a <p>, keeping line breaks."""
    return f"<p>{escape(text).replace(chr(10), '<br>')}</p>"


def layout(app_name: str, inner_html: str) -> str:
    """Wrap body HTML in the shared email layout."""
    return (
        "<!DOCTYPE html>"
        "<html><body style=\"font-family: Arial, sans-serif; color: #1f2937;\">"
        f"<h2 style=\"color: #2563eb;\">{escape(app_name)}</h2>"
        f"{inner_html}"
        "<hr style=\"border: none; border-top: 1px solid #e5e7eb;\">"
        f"<p style=\"font-size: 12px; color: #6b7280;\">"
        f"You are receiving this because notifications are enabled for your "
        f"{escape(app_name)} account.</p>"
        "</body></html>"
    )


def render_notification(data: dict) -> RenderedEmail:
    """Generic notification email.

    Args:
        data: user_name, subject, message and app_name

    Returns:
        RenderedEmail with text and HTML bodies
    """
    app_name = data.get("app_name") or "LabTasker"
    user_name = data.get("user_name") or "there"
    subject = data.get("subject", "")
    message = data.get("message", "")

    text = (
        f"Hello {user_name},\n\n"
        f"{message}\n\n"
        f"- {app_name}"
    )

    inner = (
        paragraph(f"Hello {user_name},")
        + (f"<h3>{escape(subject)}</h3>" if subject else "")
        + paragraph(message)
    )
    return RenderedEmail(text=text, html=layout(app_name, inner))


TEMPLATES = {
    "notification": render_notification,
}


def render_template(name: str, data: dict) -> RenderedEmail:
    """Render a named template.

    Raises:
        ValueError: If the template is unknown
    """
    renderer = TEMPLATES.get(name)
    if renderer is None:
        raise ValueError(f"Unknown email template: {name}")
    return renderer(data or {})
