"""Configuration loading and saving.

Config file location: ~/.config/bird-archive/config.toml

Schema (every key optional):
    [database]
    path = "bookmarks.db"

    [bird]
    command = "bird"
    count = 50           # bookmarks fetched per refresh
    fetch_timeout = 30.0
    probe_timeout = 10.0
"""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

import tomli_w

from .client import BIRD_COMMAND, FETCH_TIMEOUT, PROBE_TIMEOUT

CONFIG_DIR = Path.home() / ".config" / "bird-archive"
CONFIG_FILE = CONFIG_DIR / "config.toml"


@dataclass
class BirdConfig:
    command: str = BIRD_COMMAND
    count: int = 50
    fetch_timeout: float = FETCH_TIMEOUT
    probe_timeout: float = PROBE_TIMEOUT


@dataclass
class AppConfig:
    database_path: Path = Path("bookmarks.db")
    bird: BirdConfig = field(default_factory=BirdConfig)


def load_config(config_path: Path = CONFIG_FILE) -> AppConfig:
    """Load and validate config from TOML file. A missing file means defaults."""
    if not config_path.exists():
        return AppConfig()

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    database_data = data.get("database", {})
    bird_data = data.get("bird", {})

    bird = BirdConfig(
        command=str(bird_data.get("command", BIRD_COMMAND)),
        count=int(bird_data.get("count", 50)),
        fetch_timeout=float(bird_data.get("fetch_timeout", FETCH_TIMEOUT)),
        probe_timeout=float(bird_data.get("probe_timeout", PROBE_TIMEOUT)),
    )

    if not bird.command.strip():
        raise ValueError("Config bird.command must not be empty")
    if bird.count < 1:
        raise ValueError(f"Config bird.count must be positive, got {bird.count}")
    if bird.fetch_timeout <= 0 or bird.probe_timeout <= 0:
        raise ValueError("Config bird timeouts must be positive")

    return AppConfig(
        database_path=Path(database_data.get("path", "bookmarks.db")),
        bird=bird,
    )


def save_config(config: AppConfig, config_path: Path = CONFIG_FILE) -> None:
    """Write config to TOML file."""
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "database": {
            "path": str(config.database_path),
        },
        "bird": {
            "command": config.bird.command,
            "count": config.bird.count,
            "fetch_timeout": config.bird.fetch_timeout,
            "probe_timeout": config.bird.probe_timeout,
        },
    }

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)


def config_exists(config_path: Path = CONFIG_FILE) -> bool:
    """Check if config file exists."""
    return config_path.exists()
