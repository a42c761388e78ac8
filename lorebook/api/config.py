"""
Lorebook Configuration
======================

``Settings`` is read from the environment (and ``.env``). The ``injection``
section may also come from ``config/settings.yaml``, or from the file named
by ``LOREBOOK_CONFIG``. Environment variables always win over the file.
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "settings.yaml"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class InjectionSettings(BaseSettings):
    """Knobs of the per-turn injection pipeline (``LOREBOOK_INJECTION_*``)."""

    model_config = SettingsConfigDict(env_prefix="LOREBOOK_INJECTION_", extra="ignore")

    token_budget: int = Field(default=5000, ge=0, description="Token budget for one turn's injection block")
    default_scan_depth: int = Field(default=5, ge=1, description="Scan depth given to rules authored without one")
    separator: str = Field(default="\n\n", description="Placed between rule contents in the block")
    include_titles: bool = Field(
        default=False, description="Head each injected rule with its title, priority and matched keywords"
    )
    header: str | None = Field(default=None, description="Line opening a non-empty injection block")
    footer: str | None = Field(
        default=None, description="Line closing a non-empty block; may use {count} and {tokens}"
    )
    secondary_keyword_mode: Literal["metadata", "merged"] = Field(
        default="metadata",
        description="'metadata': secondary keywords are display-only; 'merged': they join the trigger set",
    )
    token_weight_mode: Literal["chars", "tiktoken"] = Field(
        default="chars", description="ceil(len/4) estimate, or a tiktoken count"
    )
    tiktoken_encoding: str = Field(default="cl100k_base", description="Encoding for tiktoken weights")
    random_seed: int | None = Field(default=None, description="Fixes probability rolls when set")

    @field_validator("footer")
    @classmethod
    def _footer_placeholders(cls, v: str | None) -> str | None:
        if v is not None:
            try:
                v.format(count=0, tokens=0)
            except (KeyError, IndexError, ValueError) as e:
                raise ValueError(f"footer may only use {{count}} and {{tokens}}: {e}") from e
        return v


class Settings(BaseSettings):
    """Process settings for the Lorebook API and embedding applications."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Lorebook"
    app_version: str = "0.3.0"
    debug: bool = False
    log_level: LogLevel = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8000

    injection: InjectionSettings = Field(default_factory=InjectionSettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    @classmethod
    def load_yaml_config(cls, config_path: Path | None = None) -> dict[str, Any]:
        """Read the YAML config; a missing file yields ``{}``."""
        if config_path is None:
            config_path = Path(os.getenv("LOREBOOK_CONFIG") or DEFAULT_CONFIG_PATH)

        if not config_path.exists():
            return {}
        return yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}


def apply_yaml_config(settings: Settings, yaml_config: dict[str, Any]) -> Settings:
    """
    Overlay the ``injection`` block of a YAML config onto ``settings``.

    Only keys the environment left unset are taken from the file.
    """
    from_file = yaml_config.get("injection") or {}
    if not from_file:
        return settings

    from_env = InjectionSettings().model_dump(exclude_unset=True)
    settings.injection = InjectionSettings(**{**from_file, **from_env})
    return settings


@lru_cache
def get_settings() -> Settings:
    settings = Settings()

    try:
        apply_yaml_config(settings, Settings.load_yaml_config())
    except (OSError, yaml.YAMLError, ValueError) as e:
        logger.warning(f"Ignoring YAML config, using environment and defaults: {e}")

    return settings


settings = get_settings()
