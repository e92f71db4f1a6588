"""
Story store configuration.

Environment-based settings (prefix ``STORYSTORE_``, optional ``.env`` file).
"""
import logging
from functools import lru_cache
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _app_version_from_package() -> str:
    """Read the installed distribution version."""
    try:
        from importlib.metadata import version
        return version("storystore")
    except Exception:
        return "0.0.0-unknown"


class Settings(BaseSettings):
    """Store settings loaded from environment variables."""

    app_name: str = "storystore"
    app_version: str = _app_version_from_package()
    debug: bool = False

    # Where deferred selection notifications run: the asyncio loop, or a
    # queue drained by StoryStore.flush_notifications().
    scheduler: Literal["asyncio", "manual"] = "asyncio"

    # Log a warning when add_story overwrites an existing id.
    warn_on_duplicate_story: bool = True

    # Invalid options.storySort raises at extract() time; when False it is
    # logged and the catalogue keeps insertion order.
    strict_sort_config: bool = True

    # View mode used by set_selection() when the caller gives none.
    default_view_mode: str = "story"

    @model_validator(mode="after")
    def _warn_lenient_sort_in_debug(self) -> "Settings":
        """Lenient sorting hides misconfiguration; say so while debugging."""
        if self.debug and not self.strict_sort_config:
            logging.getLogger(__name__).warning(
                "STORYSTORE_STRICT_SORT_CONFIG=false: invalid storySort values "
                "will be ignored instead of raising."
            )
        return self

    model_config = SettingsConfigDict(
        env_prefix="STORYSTORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
