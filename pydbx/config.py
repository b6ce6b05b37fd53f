"""Configuration management for pydbx."""

import os
from pathlib import Path
from typing import Optional

DEFAULT_API_URL = "https://api.dropboxapi.com/2"
DEFAULT_CONTENT_URL = "https://content.dropboxapi.com/2"

TOKEN_KEY = "DROPBOX_ACCESS_TOKEN"
API_URL_KEY = "DROPBOX_API_URL"
CONTENT_URL_KEY = "DROPBOX_CONTENT_URL"


class Config:
    """Settings loaded from the environment and the user config file.

    Environment variables take precedence over values stored in
    ``~/.config/pydbx/config``. The config directory can be moved with
    ``PYDBX_CONFIG_DIR``.
    """

    def get_config_dir(self) -> Path:
        custom = os.environ.get("PYDBX_CONFIG_DIR")
        if custom:
            return Path(custom).expanduser()
        return Path.home() / ".config" / "pydbx"

    def get_config_path(self) -> Path:
        return self.get_config_dir() / "config"

    def _read_file(self) -> dict[str, str]:
        """Read KEY=VALUE pairs from the config file.

        Returns:
            Mapping of keys to values (empty if the file does not exist)
        """
        path = self.get_config_path()
        values: dict[str, str] = {}
        if not path.is_file():
            return values

        for line in path.read_text(encoding="utf-8").splitlines():
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
        return self._read_file().get(key) or None

    @property
    def access_token(self) -> Optional[str]:
        return self._get(TOKEN_KEY)

    @property
    def api_url(self) -> str:
        return (self._get(API_URL_KEY) or DEFAULT_API_URL).rstrip("/")

    @property
    def content_url(self) -> str:
        return (self._get(CONTENT_URL_KEY) or DEFAULT_CONTENT_URL).rstrip("/")

    def is_configured(self) -> bool:
        """Check whether an access token is available."""
        return bool(self.access_token)

    def save_access_token(self, token: str) -> None:
        """Store the access token in the config file.

        Other keys in the file are preserved. The file is only readable
        by the current user.

        Args:
            token: Access token to store
        """
        path = self.get_config_path()
        path.parent.mkdir(parents=True, exist_ok=True)

        values = self._read_file()
        values[TOKEN_KEY] = token
        content = "".join(f"{key}={value}\n" for key, value in values.items())

        path.write_text(content, encoding="utf-8")
        path.chmod(0o600)


config = Config()
