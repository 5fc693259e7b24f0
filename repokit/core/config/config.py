import configparser
import os
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, List, Union

from pydantic import BaseModel
from pydantic_settings import BaseSettings


class REPOKIT_DIR_PATHS(BaseModel):
    ROOT: str
    LOGGER_DIR: str
    STRUCT_LOGGER_DIR: str
    ERROR_LOG_DIR: str


class REPOKIT_LOGGER(BaseModel):
    USE_STRUCTLOG: bool = False


class REPOKIT_DATABASE(BaseModel):
    ENVIRONMENT: str = "production"
    DISABLE_ERROR_LOG: bool = False
    ERROR_LOG_FILE: str = "errors_latest.log"


def load_ini_as_dict(ini_path: Path) -> Dict[str, Any]:
    """
    Load and parse an INI file into a nested dictionary with normalized keys.

    Sections and keys are converted to uppercase for uniform access. Tilde (`~`)
    in values is expanded to the user home directory.

    Args:
        ini_path (Path): Path to the `.ini` configuration file.

    Returns:
        Dict[str, Any]: A dictionary where each section is a key mapped to another
        dictionary of key-value pairs from that section.

    Example:
        .. code-block:: ini

            [repokit_database]
            environment = development

        .. code-block:: python

            config = load_ini_as_dict(Path("config.ini"))
            print(config["REPOKIT_DATABASE"]["ENVIRONMENT"])
    """
    if not ini_path.exists():
        return {}

    config = configparser.ConfigParser(interpolation=configparser.ExtendedInterpolation())
    config.optionxform = str
    config.read(ini_path)

    result = {}
    for section in config.sections():
        result[section.upper()] = {
            key.upper(): os.path.expanduser(value) if value.startswith("~") else value
            for key, value in config[section].items()
        }
    return result


def load_ini_settings() -> Dict[str, Any]:
    ini_path = Path(__file__).parent / "config.ini"
    return load_ini_as_dict(ini_path)


class CoreSettings(BaseSettings):
    REPOKIT_DIR_PATHS: REPOKIT_DIR_PATHS
    REPOKIT_LOGGER: REPOKIT_LOGGER
    REPOKIT_DATABASE: REPOKIT_DATABASE

    model_config = {
        "env_nested_delimiter": "__",
    }

    @property
    def is_development(self) -> bool:
        return self.REPOKIT_DATABASE.ENVIRONMENT.lower() == "development"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        def _expand_tilde(obj):
            if isinstance(obj, str):
                return os.path.expanduser(obj) if obj.startswith("~") else obj
            if isinstance(obj, dict):
                return {k: _expand_tilde(v) for k, v in obj.items()}
            return obj

        def env_settings_expanded():
            return _expand_tilde(env_settings())

        return (
            init_settings,  # constructor kwargs
            env_settings_expanded,  # env vars (with '~' expanded)
            dotenv_settings,
            load_ini_settings,  # packaged INI file (lowest precedence)
            file_secret_settings,
        )


# Overrides accepted by load_settings and the Repokit base class
SettingsLike = Union[
    Dict[str, Any],
    List[Union[Dict[str, Any], BaseModel]],
    BaseModel,
    None,
]


def _deep_update(base: dict, override: dict) -> dict:
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            base[k] = _deep_update(base[k], v)
        else:
            base[k] = v
    return base


def load_settings(overrides: SettingsLike = None) -> CoreSettings:
    """Load CoreSettings and layer runtime overrides on top.

    Overrides take precedence over every other source. They may be given as a (possibly partial) nested dict, a
    pydantic model or a list of those, applied in order.

    Example:
        .. code-block:: python

            settings = load_settings({"REPOKIT_DATABASE": {"ENVIRONMENT": "development"}})
            assert settings.is_development
    """
    if overrides is None:
        return CoreSettings()

    items = overrides if isinstance(overrides, list) else [overrides]
    merged = deepcopy(CoreSettings().model_dump())
    for item in items:
        if isinstance(item, BaseModel):
            item = item.model_dump(exclude_unset=True)
        merged = _deep_update(merged, deepcopy(item))
    return CoreSettings(**merged)
