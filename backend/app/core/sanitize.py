"""Text sanitization utilities to prevent XSS attacks."""

import html


def sanitize_text(value: str | None) -> str | None:
    """Sanitize user-supplied text to prevent stored XSS.

    Order and cart item notes end up on the kitchen display and in the
    dashboard, so they are HTML-escaped before being stored.
    """
    if value is None:
        return None
    return html.escape(value.strip(), quote=True)
