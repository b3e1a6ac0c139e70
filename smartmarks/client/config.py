import os
from dataclasses import dataclass


@dataclass
class ClientSettings:
    server_url: str = os.environ.get("SMARTMARKS_SERVER", "http://localhost:8080")
    token: str = os.environ.get("SMARTMARKS_TOKEN", "")
    request_timeout: float = float(os.environ.get("SMARTMARKS_TIMEOUT", "10"))
    notice_ttl: float = float(os.environ.get("NOTICE_TTL_SECONDS", "2.5"))
    channel_wait: float = float(os.environ.get("CHANNEL_WAIT_SECONDS", "25"))
    channel_retry: float = float(os.environ.get("CHANNEL_RETRY_SECONDS", "3"))
    session_refresh_margin: float = float(
        os.environ.get("SESSION_REFRESH_MARGIN", "60")
    )

    @property
    def api_base_url(self) -> str:
        return self.server_url.rstrip("/") + "/api/v1"
