"""
Centralized settings and path configuration for supply pricing.
"""
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 3 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


def parse_bool(value: Optional[str]) -> bool:
    """Parse a boolean from an environment string."""
    return (value or '').strip().lower() in ('true', '1', 'yes', 'on')


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    # Project paths
    project_root: Path
    data_dir: Path

    # Supply record store
    supply_records_csv: Path

    log_level: str = 'INFO'

    # Report every tier violation instead of stopping at the first one
    collect_all_violations: bool = False

    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> 'Settings':
        """Load settings from the project structure and environment."""
        root = project_root or get_project_root()

        data_dir = Path(os.environ.get('SUPPLY_PRICING_DATA_DIR') or root / 'data')

        return cls(
            project_root=root,
            data_dir=data_dir,
            supply_records_csv=data_dir / 'supply_records.csv',
            log_level=os.environ.get('SUPPLY_PRICING_LOG_LEVEL', 'INFO').upper(),
            collect_all_violations=parse_bool(os.environ.get('SUPPLY_PRICING_COLLECT_ALL')),
        )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings
