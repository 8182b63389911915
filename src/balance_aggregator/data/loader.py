"""Settings and API key loader."""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, NonNegativeFloat, NonNegativeInt, PositiveFloat, PositiveInt

logger = logging.getLogger(__name__)

SETTINGS_PATH = Path(__file__).parent / "settings.yaml"
API_KEYS_PATH = Path("apikeys.yaml")
API_KEY_ENV_VAR = "ETHPLORER_API_KEY"


class Settings(BaseModel):
    """
    Balance lookup settings.

    Attributes
    ----------
    base_url : str
        Ethplorer API base URL
    free_api_key : str
        Key of the rate-limited free tier
    throttle_seconds : float
        Pause between requests when using the free key
    timeout : float
        Request timeout in seconds
    max_workers : int
        Concurrent requests for paid keys
    max_retries : int
        Retries per failed address

    """

    base_url: str = "https://api.ethplorer.io"
    free_api_key: str = "freekey"
    throttle_seconds: NonNegativeFloat = 2.0
    timeout: PositiveFloat = 30.0
    max_workers: PositiveInt = 8
    max_retries: NonNegativeInt = 0


def _load_yaml(path: Path) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data or {}


def load_settings(path: Path | str | None = None) -> Settings:
    """
    Load settings from a YAML file.

    Parameters
    ----------
    path : Path | str | None
        Settings file. Uses the packaged settings.yaml if None.

    Returns
    -------
    Settings
        Validated settings

    Raises
    ------
    pydantic.ValidationError
        If a setting has an invalid value

    """
    return Settings.model_validate(_load_yaml(Path(path) if path else SETTINGS_PATH))


def load_api_key(path: Path | str | None = None, settings: Settings | None = None) -> str:
    """
    Resolve the Ethplorer API key.

    Looks at the ETHPLORER_API_KEY environment variable first, then the
    `ethplorer` entry of an API keys YAML file, and falls back to the free key.

    Parameters
    ----------
    path : Path | str | None
        API keys file. Uses ./apikeys.yaml if None.
    settings : Settings | None
        Settings providing the free key. Uses defaults if None.

    Returns
    -------
    str
        API key

    """
    settings = settings or Settings()

    env_key = os.getenv(API_KEY_ENV_VAR)
    if env_key:
        return env_key

    keys_path = Path(path) if path else API_KEYS_PATH
    if keys_path.exists():
        try:
            api_key = _load_yaml(keys_path).get("ethplorer")
        except (yaml.YAMLError, AttributeError) as e:
            logger.warning("Could not read API keys from %s: %s", keys_path, e)
        else:
            if isinstance(api_key, str) and api_key:
                return api_key

    return settings.free_api_key


def is_free_api_key(api_key: str, settings: Settings | None = None) -> bool:
    """
    Check whether a key is the rate-limited free key.

    Parameters
    ----------
    api_key : str
        API key
    settings : Settings | None
        Settings providing the free key. Uses defaults if None.

    Returns
    -------
    bool
        True for the free key

    """
    settings = settings or Settings()
    return api_key == settings.free_api_key
