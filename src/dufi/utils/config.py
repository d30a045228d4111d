"""User configuration management."""

import logging
import tomllib
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class Config:
    """User configuration manager."""

    def __init__(self, config_file: Path | None = None):
        """Initialize config with defaults."""
        self.config_dir = Path.home() / ".config" / "dufi"
        self.config_file = config_file or self.config_dir / "config.toml"
        self._config = self._load_config()

    def _load_config(self) -> dict[str, Any]:
        """Load config from file or return defaults."""
        defaults = {
            "scan": {
                "bytes": 16 * 1024,
                "batch_size": 100,
                "extensions": [],
                "algorithm": "sha256",
            },
            "cache": {
                "path": str(Path.home() / ".cache" / "dufi" / "fingerprints"),
                "validate_stat": False,
            },
        }

        if not self.config_file.exists():
            return defaults

        try:
            with open(self.config_file, "rb") as f:
                user_config = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.warning("Ignoring unreadable config %s: %s", self.config_file, e)
            return defaults

        return self._merge_configs(defaults, user_config)

    def _merge_configs(self, defaults: dict, user: dict) -> dict:
        """Recursively merge user config into defaults."""
        result = defaults.copy()
        for key, value in user.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value
        return result

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """Get a config value."""
        return self._config.get(section, {}).get(key, default)

    @property
    def cache_path(self) -> Path:
        return Path(self.get("cache", "path")).expanduser()

    def create_example_config(self) -> None:
        """Create an example config file."""
        self.config_file.parent.mkdir(parents=True, exist_ok=True)

        example = """# dufi configuration file
# Location: ~/.config/dufi/config.toml

[scan]
# Number of leading and trailing bytes hashed per file
bytes = 16384

# Files fingerprinted concurrently per batch
batch_size = 100

# Only consider these extensions (empty = every file)
extensions = []

# Any hashlib algorithm name
algorithm = "sha256"

[cache]
# Fingerprint cache file
path = "~/.cache/dufi/fingerprints"

# Re-hash files whose size or modification time changed since caching
validate_stat = false
"""

        with open(self.config_file, "w") as f:
            f.write(example)


# Global config instance
_config = None


def get_config() -> Config:
    """Get the global config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config
