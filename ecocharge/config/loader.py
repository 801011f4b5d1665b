"""
Configuration management and loading.

Handles application settings from YAML and environment variables.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from ecocharge.storage.db import resolve_db_path
from ecocharge.storage.models import PROVIDERS


@dataclass(frozen=True)
class ChartConfig:
    """Terminal chart rendering options."""
    width: int = 40

    def __post_init__(self):
        """Validate chart width is positive."""
        if self.width <= 0:
            raise ValueError("chart width must be > 0")


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration."""
    db_path: str
    currency_symbol: str = "₺"
    providers: List[str] = field(default_factory=lambda: list(PROVIDERS))
    chart: ChartConfig = field(default_factory=ChartConfig)


def default_config(db_path: Optional[str] = None) -> AppConfig:
    """Configuration used when no config file is given."""
    return AppConfig(db_path=resolve_db_path(db_path))


def load_app_config(path: str, db_path: Optional[str] = None) -> AppConfig:
    """Load and validate application configuration from YAML file.

    Unknown keys are rejected so a typo never silently falls back to a
    default.

    Args:
        path: Path to YAML configuration file
        db_path: Database path override (e.g. from the command line)

    Returns:
        Validated AppConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a mapping")

    allowed_top_keys = {'database', 'currency_symbol', 'providers', 'chart'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    file_db_path = _parse_database(raw_config.get('database', {}))

    currency_symbol = raw_config.get('currency_symbol', "₺")
    if not isinstance(currency_symbol, str) or not currency_symbol:
        raise ValueError("'currency_symbol' must be a non-empty string")

    providers = raw_config.get('providers', list(PROVIDERS))
    if not isinstance(providers, list) or not providers:
        raise ValueError("'providers' must be a non-empty list")
    for provider in providers:
        if not isinstance(provider, str) or not provider.strip():
            raise ValueError("'providers' entries must be non-empty strings")

    chart = _parse_chart(raw_config.get('chart', {}))

    return AppConfig(
        db_path=resolve_db_path(db_path, file_db_path),
        currency_symbol=currency_symbol,
        providers=list(providers),
        chart=chart
    )


def _parse_database(data: Dict) -> Optional[str]:
    """Parse the database section, returning its path if set.

    Raises:
        ValueError: If the section is invalid
    """
    if not isinstance(data, dict):
        raise ValueError("'database' must be a dictionary")

    unknown_keys = set(data.keys()) - {'path'}
    if unknown_keys:
        raise ValueError(f"Unknown database keys: {unknown_keys}")

    path = data.get('path')
    if path is not None and (not isinstance(path, str) or not path):
        raise ValueError("'database.path' must be a non-empty string")
    return path


def _parse_chart(data: Dict) -> ChartConfig:
    """Parse the chart section.

    Raises:
        ValueError: If the section is invalid
    """
    if not isinstance(data, dict):
        raise ValueError("'chart' must be a dictionary")

    unknown_keys = set(data.keys()) - {'width'}
    if unknown_keys:
        raise ValueError(f"Unknown chart keys: {unknown_keys}")

    width = data.get('width', 40)
    if not isinstance(width, int) or isinstance(width, bool):
        raise ValueError("'chart.width' must be an integer")
    return ChartConfig(width=width)
