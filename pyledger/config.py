"""Configuration management for pyledger."""

import os
from pathlib import Path
from typing import Optional

DEFAULT_API_URL = "http://127.0.0.1:8000"
DEFAULT_TIMEOUT = 30.0
DEFAULT_LEDGER_NAME = "First password ledger"

# Keys understood in the config file, mapped to their environment variables
CONFIG_KEYS = {
    "api_url": "PYLEDGER_API_URL",
    "timeout": "PYLEDGER_TIMEOUT",
    "ledger_name": "PYLEDGER_LEDGER_NAME",
}


class Config:
    """Configuration for the ledger client.

    Values are looked up in the environment first, then in the config file
    (``~/.config/pyledger/config``, one ``key=value`` per line), then fall back
    to defaults.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding the config file. Defaults to
                ~/.config/pyledger/
        """
        if config_dir is None:
            config_dir = Path.home() / ".config" / "pyledger"
        self.config_dir = config_dir

    def get_config_path(self) -> Path:
        """Get the path of the config file."""
        return self.config_dir / "config"

    def is_configured(self) -> bool:
        """Check whether a config file has been written."""
        return self.get_config_path().exists()

    def _read_file(self) -> dict[str, str]:
        """Read key=value pairs from the config file.

        Returns:
            Dictionary of values found in the file (empty if missing)
        """
        path = self.get_config_path()
        values: dict[str, str] = {}
        if not path.exists():
            return values

        with open(path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, _, value = line.partition("=")
                values[key.strip()] = value.strip()
        return values

    def get(self, key: str) -> Optional[str]:
        """Get a raw configuration value.

        Args:
            key: One of CONFIG_KEYS

        Returns:
            The value from the environment or the config file, or None
        """
        env_var = CONFIG_KEYS.get(key)
        if env_var and os.environ.get(env_var):
            return os.environ[env_var]
        return self._read_file().get(key)

    @property
    def api_url(self) -> str:
        """Base URL of the command endpoint."""
        return (self.get("api_url") or DEFAULT_API_URL).rstrip("/")

    @property
    def timeout(self) -> float:
        """Request timeout in seconds."""
        raw = self.get("timeout")
        if not raw:
            return DEFAULT_TIMEOUT
        try:
            return float(raw)
        except ValueError:
            return DEFAULT_TIMEOUT

    @property
    def ledger_name(self) -> str:
        """Name of the ledger collection opened at session start."""
        return self.get("ledger_name") or DEFAULT_LEDGER_NAME

    def save(self, **values: str) -> None:
        """Write values to the config file, keeping existing keys.

        Args:
            **values: Keys from CONFIG_KEYS and their new values

        Raises:
            ValueError: If an unknown key is given
        """
        unknown = set(values) - set(CONFIG_KEYS)
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(sorted(unknown))}")

        merged = self._read_file()
        merged.update({k: str(v) for k, v in values.items()})

        self.config_dir.mkdir(parents=True, exist_ok=True)
        path = self.get_config_path()
        with open(path, "w", encoding="utf-8") as f:
            f.write("# pyledger configuration\n")
            for key in sorted(merged):
                f.write(f"{key}={merged[key]}\n")
        # Config may name a private server, keep it user-only
        path.chmod(0o600)


config = Config()
