from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Annotated

from pydantic import Field, StringConstraints, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import TomlConfigSettingsSource

from .config import HOME_CONFIG_PATH, ConfigError
from .telegram.api_models import UPDATE_KINDS

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class TgpollSettings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="forbid",
        env_prefix="TGPOLL__",
        env_nested_delimiter="__",
        str_strip_whitespace=True,
    )

    bot_token: NonEmptyStr
    poll_timeout_s: int = Field(default=50, ge=0, le=600)
    request_margin_s: float = Field(default=5.0, ge=0)
    bootstrap_timeout_s: float = Field(default=5.0, gt=0)
    limit: int | None = Field(default=None, ge=1, le=100)
    allowed_updates: list[NonEmptyStr] = Field(
        default_factory=lambda: ["message", "callback_query"]
    )
    drop_pending_updates: bool = False

    @field_validator("allowed_updates")
    @classmethod
    def _validate_allowed_updates(cls, value: list[str]) -> list[str]:
        unknown = [kind for kind in value if kind not in UPDATE_KINDS]
        if unknown:
            raise ValueError(
                f"unknown update kinds {unknown}; "
                f"expected any of {', '.join(UPDATE_KINDS)}"
            )
        return list(dict.fromkeys(value))

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


def load_settings(path: str | Path | None = None) -> tuple[TgpollSettings, Path]:
    cfg_path = Path(path).expanduser() if path else HOME_CONFIG_PATH
    if cfg_path.exists() and not cfg_path.is_file():
        raise ConfigError(f"Config path {cfg_path} exists but is not a file.")
    if not cfg_path.exists():
        raise ConfigError(f"Missing config file {cfg_path}.")
    return _load_settings_from_path(cfg_path), cfg_path


def _load_settings_from_path(cfg_path: Path) -> TgpollSettings:
    cfg = dict(TgpollSettings.model_config)
    cfg["toml_file"] = cfg_path
    Bound = type(
        "TgpollSettingsBound",
        (TgpollSettings,),
        {"model_config": SettingsConfigDict(**cfg)},
    )
    try:
        return Bound()
    except ValidationError as exc:
        raise ConfigError(f"Invalid config in {cfg_path}: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Malformed TOML in {cfg_path}: {exc}") from None
    except OSError as exc:
        raise ConfigError(f"Failed to read config file {cfg_path}: {exc}") from exc
