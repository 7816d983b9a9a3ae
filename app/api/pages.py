"""HTML pages rendered at the end of the HubSpot install flow."""

from __future__ import annotations

from html import escape

from app.core.errors import ProviderError

_STALE_CODE_ERRORS = frozenset({"BAD_AUTH_CODE", "invalid_grant"})

_STYLE = """
    body {
      font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
      max-width: 700px;
      margin: 50px auto;
      padding: 20px;
    }
    .success { color: #16a34a; background: #dcfce7; padding: 30px; border-radius: 8px; text-align: center; }
    .error { color: #dc2626; background: #fee; padding: 20px; border-radius: 8px; margin: 20px 0; }
    .info { background: #f0f9ff; border-left: 4px solid #0284c7; padding: 15px; margin: 20px 0; border-radius: 4px; }
    code { background: #f1f5f9; padding: 2px 6px; border-radius: 3px; }
"""


def _page(title: str, body: str) -> str:
    return (
        "<!DOCTYPE html>\n"
        f"<html><head><title>{escape(title)}</title><style>{_STYLE}</style></head>"
        f"<body>{body}</body></html>"
    )


def is_stale_code_error(exc: ProviderError) -> bool:
    """True when HubSpot rejected the authorization code as unknown, used, or expired."""
    if exc.error in _STALE_CODE_ERRORS:
        return True
    message = (exc.message or "").lower()
    return "auth code" in message or "authorization code" in message


def render_success_page(portal_id: str) -> str:
    portal = escape(portal_id)
    return _page(
        "OAuth Success",
        f"""
        <div class="success">
          <h2>Installation Complete!</h2>
          <p>HubSpot authentication was successful for portal <strong>{portal}</strong>.</p>
        </div>
        <div class="info">
          <h3>Multi-Tenant Setup</h3>
          <p>Each portal has isolated tokens. These tokens belong to portal <code>{portal}</code>.</p>
        </div>
        """,
    )


def render_error_page(message: str, *, stale_code: bool = False) -> str:
    if stale_code:
        hint = (
            "<p>The authorization code was already used or has expired. Codes are "
            "single-use and short-lived: start the install again from HubSpot rather "
            "than reloading this page.</p>"
        )
    else:
        hint = "<p>You can close this window and try again.</p>"
    return _page(
        "OAuth Error",
        f"""
        <h2>OAuth Error</h2>
        <div class="error">{escape(message)}</div>
        {hint}
        """,
    )


__all__ = ["is_stale_code_error", "render_error_page", "render_success_page"]
