"""Configuration management for gdrive-push.

Values are resolved from environment variables first, then from a simple
``KEY=value`` file at ``~/.config/gdrive-push/config``.
"""

import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://www.googleapis.com/drive/v3"
DEFAULT_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3"
DEFAULT_MAX_OPS = 20

ACCESS_TOKEN_KEY = "GDRIVE_ACCESS_TOKEN"
API_URL_KEY = "GDRIVE_API_URL"
UPLOAD_URL_KEY = "GDRIVE_UPLOAD_URL"
MAX_OPS_KEY = "GDRIVE_MAX_OPS"


class Config:
    """Configuration resolved from the environment and the config file."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding the config file. Defaults to
                ~/.config/gdrive-push
        """
        if config_dir is None:
            config_dir = Path.home() / ".config" / "gdrive-push"
        self.config_dir = config_dir
        self.config_file = config_dir / "config"

    def get_config_path(self) -> Path:
        """Return the path of the config file."""
        return self.config_file

    def _load_file(self) -> dict[str, str]:
        """Read ``KEY=value`` pairs from the config file."""
        values: dict[str, str] = {}
        if not self.config_file.exists():
            return values

        try:
            content = self.config_file.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not read config file {self.config_file}: {e}")
            return values

        for line in content.splitlines():
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            values[key.strip()] = value.strip().strip('"').strip("'")
        return values

    def _get(self, key: str) -> Optional[str]:
        value = os.environ.get(key)
        if value:
            return value
        return self._load_file().get(key) or None

    @property
    def access_token(self) -> Optional[str]:
        """OAuth access token used as bearer credential."""
        return self._get(ACCESS_TOKEN_KEY)

    @property
    def api_url(self) -> str:
        """Base URL of the Drive metadata API."""
        return self._get(API_URL_KEY) or DEFAULT_API_URL

    @property
    def upload_url(self) -> str:
        """Base URL of the Drive media upload API."""
        return self._get(UPLOAD_URL_KEY) or DEFAULT_UPLOAD_URL

    @property
    def max_ops(self) -> int:
        """Default ceiling for mutating operations per run."""
        value = self._get(MAX_OPS_KEY)
        if not value:
            return DEFAULT_MAX_OPS
        try:
            return int(value)
        except ValueError:
            logger.warning(
                f"Ignoring invalid {MAX_OPS_KEY}={value!r}, using {DEFAULT_MAX_OPS}"
            )
            return DEFAULT_MAX_OPS

    def is_configured(self) -> bool:
        """Check whether an access token is available."""
        return bool(self.access_token)

    def save_access_token(self, token: str) -> None:
        """Store the access token in the config file.

        Other keys already present in the file are preserved. The file is
        created with owner-only permissions.

        Args:
            token: OAuth access token
        """
        values = self._load_file()
        values[ACCESS_TOKEN_KEY] = token

        self.config_dir.mkdir(parents=True, exist_ok=True)
        lines = [f"{key}={value}" for key, value in values.items()]
        self.config_file.write_text("\n".join(lines) + "\n", encoding="utf-8")
        self.config_file.chmod(0o600)
        logger.debug(f"Saved access token to {self.config_file}")


config = Config()
