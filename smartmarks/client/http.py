"""HTTP helpers shared by the Smartmarks API clients."""

import httpx

from smartmarks.client.config import ClientSettings


def auth_headers(token: str | None) -> dict[str, str]:
    """Build the Authorization header for a bearer session token."""
    if not token:
        return {}
    return {"Authorization": f"Bearer {token}"}


def error_message(response: httpx.Response) -> str:
    """Return the server's error text verbatim, falling back to the HTTP reason."""
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    text = response.text.strip()
    if text:
        return text
    return response.reason_phrase or f"HTTP {response.status_code}"


def transport_message(exc: httpx.HTTPError) -> str:
    message = str(exc).strip()
    if message:
        return message
    return exc.__class__.__name__


def build_http_client(settings: ClientSettings) -> httpx.AsyncClient:
    """Create the AsyncClient every collaborator of one session shares."""
    # long-polls must outlive the channel wait
    timeout = httpx.Timeout(
        settings.request_timeout, read=settings.channel_wait + settings.request_timeout
    )
    return httpx.AsyncClient(base_url=settings.api_base_url, timeout=timeout)
