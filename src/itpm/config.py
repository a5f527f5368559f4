"""
Settings resolution: defaults, then the YAML config file, then environment
variables, then explicit overrides (CLI options).
"""
import os
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field
import pydantic

from itpm.logs import get_logger
from itpm.persistence import DEFAULT_SLOT
from itpm.recovery import FatalError

log = get_logger("config")

DEFAULT_DATA_DIR = Path.home() / ".local" / "share" / "itpm" / "data"
DEFAULT_CONFIG_FILE = Path.home() / ".config" / "itpm" / "config.yml"

ENV_VARS = {
    'data_dir': 'ITPM_DATA_DIR',
    'slot': 'ITPM_SLOT',
    'log_dir': 'ITPM_LOG_DIR',
}

class Settings(BaseModel):
    data_dir: Path = Field(default=DEFAULT_DATA_DIR, description="Directory holding the persistence slot")
    slot: str = Field(default=DEFAULT_SLOT, description="Name of the persistence slot")
    log_dir: Optional[Path] = Field(default=None, description="Directory for itpm.log")

    @classmethod
    def load(cls, config_file: Union[Path, str, None] = None, **overrides) -> 'Settings':
        config_file = Path(config_file or os.getenv('ITPM_CONFIG') or DEFAULT_CONFIG_FILE)
        data = _read_config_file(config_file)

        for key, var in ENV_VARS.items():
            value = os.getenv(var)
            if value:
                data[key] = value

        data.update({k: v for k, v in overrides.items() if v is not None})
        try:
            settings = cls.model_validate(data)
        except pydantic.ValidationError as e:
            raise FatalError(f"Invalid configuration: {e}") from e
        settings.data_dir = settings.data_dir.expanduser()
        log.debug(f"Settings: {settings.model_dump()}")
        return settings

def _read_config_file(config_file: Path) -> dict:
    if not config_file.exists():
        return {}
    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise FatalError(f"Config file {config_file} is not valid YAML: {e}") from e
    except OSError as e:
        raise FatalError(f"Cannot read config file {config_file}: {e}") from e
    if not isinstance(data, dict):
        raise FatalError(f"Config file {config_file} must contain a mapping")
    log.info(f"Loaded configuration from {config_file}")
    return data
