"""Client-side session: backend URL and the stored admin token."""

import json
import logging
import os
from pathlib import Path

from .storage import data_dir, write_json_atomic

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:5000"
DEFAULT_TIMEOUT = 10.0
SESSION_FILE = "session.json"
TOKEN_KEY = "admin-token"


def resolve_api_url(value: str | None = None) -> str:
    """
    Pick the backend base URL.

    Uses `value`, else STOREDESK_API_URL, else the default. Anything that is
    not an http(s) URL falls back to the default.
    """
    url = value or os.environ.get("STOREDESK_API_URL") or DEFAULT_API_URL
    if not url.startswith("http"):
        logger.warning("Invalid API URL %r, using %s", url, DEFAULT_API_URL)
        return DEFAULT_API_URL
    return url.rstrip("/")


class Session:
    """
    Holds the backend location and the admin token between runs.

    The token is kept in <data dir>/session.json under the "admin-token" key.
    """

    def __init__(
        self,
        base_url: str | None = None,
        config_dir: Path | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.base_url = resolve_api_url(base_url)
        self.config_dir = config_dir or data_dir()
        self.session_path = self.config_dir / SESSION_FILE
        self.timeout = timeout

    @property
    def api_url(self) -> str:
        return f"{self.base_url}/api"

    def _load(self) -> dict:
        if not self.session_path.exists():
            return {}
        try:
            with open(self.session_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable session file %s: %s", self.session_path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict) -> None:
        write_json_atomic(self.session_path, data, prefix=".session_")

    def get_token(self) -> str | None:
        return self._load().get(TOKEN_KEY) or None

    def set_token(self, token: str) -> None:
        data = self._load()
        data[TOKEN_KEY] = token
        self._save(data)

    def clear_token(self) -> None:
        data = self._load()
        if data.pop(TOKEN_KEY, None) is not None:
            self._save(data)
            logger.info("Stored admin token cleared")

    @property
    def logged_in(self) -> bool:
        return self.get_token() is not None

    def auth_headers(self) -> dict[str, str]:
        """Authorization header for admin calls, empty when logged out."""
        token = self.get_token()
        return {"Authorization": f"Bearer {token}"} if token else {}
