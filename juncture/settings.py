"""Settings resolution with named profile support.

Clients never read the environment themselves; build them from settings with
``PublicClient.from_settings`` / ``SecretClient.from_settings``.
"""

import os
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path

import tomlkit
from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from juncture.exceptions import JunctureConfigurationError

CONFIG_PATH = Path.home() / ".config" / "juncture" / "config.toml"


class JunctureSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="JUNCTURE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_profile: str | None = None  # profile name
    api_url: str | None = None
    public_key: str | None = None  # cloud mode only
    secret_key: SecretStr | None = None


@lru_cache(maxsize=1)
def _load_toml() -> tomlkit.TOMLDocument:
    """Load ~/.config/juncture/config.toml, returning empty document if missing."""
    if not CONFIG_PATH.exists():
        return tomlkit.document()
    return tomlkit.load(CONFIG_PATH.open())


def _list_profiles(config: Mapping) -> list[str]:
    # tomlkit Table implements MutableMapping but not dict, so check Mapping
    return [k for k, v in config.items() if isinstance(v, Mapping)]


def get_settings(profile: str | None = None) -> JunctureSettings:
    """Resolve the active profile and return a fully populated JunctureSettings.

    Profile precedence (highest to lowest):
    1. profile argument (--profile CLI flag)
    2. JUNCTURE_PROFILE env var
    3. default_profile key in ~/.config/juncture/config.toml
    4. First profile defined in ~/.config/juncture/config.toml

    Values in the profile block win over JUNCTURE_* env vars and .env, which
    fill in whatever the profile leaves unset.
    """
    toml_config = _load_toml()

    active = (
        profile
        or os.environ.get("JUNCTURE_PROFILE")
        or toml_config.get("default_profile")
        or ((_profiles := _list_profiles(toml_config)) and _profiles[0] or None)
    )

    profile_defaults: dict = {}
    if active:
        if active in toml_config and isinstance(toml_config[active], Mapping):
            profile_defaults = dict(toml_config[active])
        else:
            profiles = _list_profiles(toml_config)
            raise JunctureConfigurationError(
                f"Profile '{active}' not found in {CONFIG_PATH}. Available: {profiles or '(none)'}"
            )

    return JunctureSettings(**profile_defaults)
