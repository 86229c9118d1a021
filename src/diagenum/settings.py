"""Environment-driven defaults for the report engine."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DiagenumSettings(BaseSettings):
    """Defaults applied when a case does not declare its own render config."""

    color: bool = Field(default=True, description="Emit ANSI colors in rendered reports.")
    index_type: Literal["byte", "char"] = Field(
        default="byte",
        description="Unit that span offsets are counted in.",
    )
    char_set: Literal["unicode", "ascii"] = Field(
        default="unicode",
        description="Glyphs used for the gutter and the location arrow.",
    )
    compact: bool = Field(default=False, description="Drop the blank gutter line under the location.")
    tab_width: int = Field(default=4, ge=1, le=16, description="Columns a tab expands to.")
    log_level: str = Field(default="WARNING", description="Level used when the CLI configures logging.")

    model_config = SettingsConfigDict(env_prefix="DIAGENUM_")


@lru_cache(maxsize=1)
def get_settings() -> DiagenumSettings:
    """Return the cached settings; tests clear the cache with ``get_settings.cache_clear()``."""

    return DiagenumSettings()


__all__ = ["DiagenumSettings", "get_settings"]
