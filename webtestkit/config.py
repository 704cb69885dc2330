"""Application configuration via pydantic-settings.

``APP_*`` environment variables are read here; a ``.env`` file in the
working directory is loaded automatically.

Usage::

    from webtestkit.config import get_settings

    settings = get_settings()
    settings.host          # "127.0.0.1"
    settings.port_number   # 8000, or None if APP_PORT is not an integer
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Where the application lives and where its server listens."""

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    host: str = Field(default="127.0.0.1", validation_alias="APP_HOST")
    # Kept as text: an unparsable port must not break loading the rest.
    port: str = Field(default="8000", validation_alias="APP_PORT")
    base_path: Path = Field(default_factory=Path.cwd, validation_alias="APP_BASE_PATH")
    entrypoint: str = Field(default="app.py", validation_alias="APP_ENTRYPOINT")

    @property
    def port_number(self) -> int | None:
        """The port as an integer, or None when APP_PORT is not a valid integer."""
        text = self.port.strip()
        if not (text.isascii() and text.isdigit()):
            return None
        return int(text)

    @property
    def entrypoint_path(self) -> Path:
        return self.base_path / self.entrypoint


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Return the process-wide settings (cached; call ``cache_clear()`` to reload)."""
    return AppSettings()
