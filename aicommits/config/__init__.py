"""Configuration Management Package"""

import json
import logging
import os
import re
import sys
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Optional

from aicommits import COMMIT_STYLES
from aicommits.generator import GenerationConfig
from aicommits.llm import PROVIDERS

logger = logging.getLogger(__name__)

MAX_GENERATE = 5

# Environment variables override the config file
ENV_OVERRIDES = {
    "AIC_PROVIDER": "provider",
    "AIC_MODEL": "model",
    "AIC_API_KEY": "api_key",
    "AIC_BASE_URL": "base_url",
}

_LOCALE = re.compile(r'^[a-z]{2}$', re.IGNORECASE)


@dataclass
class Config:
    """User configuration with sensible defaults."""
    provider: str = "openai"
    model: Optional[str] = None
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    locale: str = "en"
    max_length: int = 140
    type: str = ""
    generate: int = 1
    context_lines: int = 10
    exclude: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}

    def validate(self) -> list[str]:
        """Validate config values and return list of warnings.

        Invalid values are replaced with defaults after warning.
        """
        warnings = []
        defaults = Config()

        if self.provider not in PROVIDERS:
            warnings.append(f"Invalid provider '{self.provider}', using '{defaults.provider}'")
            self.provider = defaults.provider

        if not isinstance(self.locale, str) or not _LOCALE.match(self.locale):
            warnings.append(f"Invalid locale '{self.locale}', using '{defaults.locale}'")
            self.locale = defaults.locale

        if self.type not in COMMIT_STYLES:
            warnings.append(f"Invalid type '{self.type}', using plain messages")
            self.type = defaults.type

        if not isinstance(self.max_length, int) or self.max_length <= 0:
            warnings.append(f"Invalid max_length '{self.max_length}', using {defaults.max_length}")
            self.max_length = defaults.max_length

        if not isinstance(self.generate, int) or not 1 <= self.generate <= MAX_GENERATE:
            warnings.append(f"Invalid generate '{self.generate}', must be 1-{MAX_GENERATE}, using {defaults.generate}")
            self.generate = defaults.generate

        if not isinstance(self.context_lines, int) or self.context_lines < 0:
            warnings.append(f"Invalid context_lines '{self.context_lines}', using {defaults.context_lines}")
            self.context_lines = defaults.context_lines

        if not isinstance(self.exclude, list) or not all(isinstance(p, str) for p in self.exclude):
            warnings.append("Invalid exclude, expected a list of patterns")
            self.exclude = []

        return warnings

    def apply_env(self, environ: Optional[dict] = None) -> 'Config':
        environ = os.environ if environ is None else environ
        for var, key in ENV_OVERRIDES.items():
            value = environ.get(var)
            if value:
                setattr(self, key, value)
        return self

    def set_value(self, key: str, raw: str) -> None:
        """Set one field from its command-line text form.

        Integers are parsed, exclude takes a comma-separated list and an
        empty value clears an optional field.
        """
        fields = self.__dataclass_fields__
        if key not in fields:
            raise KeyError(f"Unknown config key '{key}'. Known keys: {', '.join(fields)}")

        default = getattr(Config(), key)
        if key == "exclude":
            value = [p.strip() for p in raw.split(",") if p.strip()]
        elif isinstance(default, int):
            try:
                value = int(raw)
            except ValueError:
                raise ValueError(f"'{key}' must be a whole number, got '{raw}'")
        elif not raw and default is None:
            value = None
        else:
            value = raw
        setattr(self, key, value)

    def generation_config(self) -> GenerationConfig:
        return GenerationConfig(
            locale=self.locale,
            max_length=self.max_length,
            commit_type=self.type,
            generate=self.generate,
            context_lines=self.context_lines,
            exclude=list(self.exclude),
        )

    @classmethod
    def from_dict(cls, data: dict) -> 'Config':
        valid_keys = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        config = cls(**filtered)
        # Validate and print warnings to stderr
        for warning in config.validate():
            print(f"Config warning: {warning}", file=sys.stderr)
        return config


class ConfigManager:
    """Manages loading and saving configuration."""

    CONFIG_FILENAME = ".aicommitsrc"

    def __init__(self):
        self._config: Optional[Config] = None
        self._config_path: Optional[Path] = None

    def load(self) -> Config:
        if self._config is not None:
            return self._config

        for path in (Path.cwd() / self.CONFIG_FILENAME, Path.home() / self.CONFIG_FILENAME):
            if path.exists():
                self._config = self._load_from_file(path)
                self._config_path = path
                break
        else:
            self._config = Config()

        self._config.apply_env()
        for warning in self._config.validate():
            print(f"Config warning: {warning}", file=sys.stderr)
        return self._config

    def path_for(self, global_config: bool = True) -> Path:
        return Path.home() / self.CONFIG_FILENAME if global_config else Path.cwd() / self.CONFIG_FILENAME

    def load_saved(self, global_config: bool = True) -> Config:
        """The file contents alone, without environment overrides, for editing."""
        path = self.path_for(global_config)
        return self._load_from_file(path) if path.exists() else Config()

    def _load_from_file(self, path: Path) -> Config:
        try:
            with open(path, 'r') as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            print(f"Warning: Could not load {path}: {e}", file=sys.stderr)
            return Config()
        if not isinstance(data, dict):
            print(f"Warning: Could not load {path}: expected a JSON object", file=sys.stderr)
            return Config()
        logger.debug("Loaded config from %s", path)
        return Config.from_dict(data)

    def save(self, config: Config, global_config: bool = True) -> Path:
        path = self.path_for(global_config)
        with open(path, 'w') as f:
            json.dump(config.to_dict(), f, indent=2)
        # May hold an API key
        os.chmod(path, 0o600)
        self._config = config
        self._config_path = path
        return path

    def get_config_path(self) -> Optional[Path]:
        return self._config_path


_manager = ConfigManager()


def load_config() -> Config:
    return _manager.load()


def load_saved_config(global_config: bool = True) -> Config:
    return _manager.load_saved(global_config)


def save_config(config: Config, global_config: bool = True) -> Path:
    return _manager.save(config, global_config)


def get_config_path() -> Optional[Path]:
    return _manager.get_config_path()


__all__ = [
    "Config",
    "ConfigManager",
    "load_config",
    "load_saved_config",
    "save_config",
    "get_config_path",
    "ENV_OVERRIDES",
    "MAX_GENERATE",
]
