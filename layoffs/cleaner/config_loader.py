"""
Configuration Loader for Cleaner

This module loads and validates the cleaning rules from cleaning.yml.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from layoffs.common.records import FIELD_NAMES

logger = logging.getLogger(__name__)


DEFAULT_INDUSTRY_PREFIXES = {'Crypto': 'Crypto'}
DEFAULT_DATE_FORMATS = ['%m/%d/%Y', '%Y-%m-%d']


@dataclass
class GapFillRules:
    """Which fields are gap-filled, and which columns identify the entity."""

    entity_key: list[str] = field(default_factory=lambda: ['company'])
    fields: list[str] = field(default_factory=lambda: ['industry'])


@dataclass
class TableNames:
    """Source (raw, read-only) and target (cleaned) table names."""

    source: str = 'layoffs'
    target: str = 'layoffs_staging'


@dataclass
class CleaningConfig:
    """Complete cleaning configuration."""

    industry_prefixes: dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_INDUSTRY_PREFIXES)
    )
    date_formats: list[str] = field(
        default_factory=lambda: list(DEFAULT_DATE_FORMATS)
    )
    gap_fill: GapFillRules = field(default_factory=GapFillRules)
    strip_country_trailing_period: bool = True
    prune_empty_metrics: bool = False
    tables: TableNames = field(default_factory=TableNames)

    def validate(self) -> None:
        """Reject settings the pipeline cannot run with."""
        if not self.date_formats:
            raise ValueError("date_formats must list at least one format")

        unknown = [
            name for name in self.gap_fill.entity_key + self.gap_fill.fields
            if name not in FIELD_NAMES
        ]
        if unknown:
            raise ValueError(f"Unknown gap_fill columns: {', '.join(unknown)}")

        overlap = set(self.gap_fill.entity_key) & set(self.gap_fill.fields)
        if overlap:
            raise ValueError(
                f"gap_fill fields cannot be part of the entity key: {', '.join(sorted(overlap))}"
            )

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "CleaningConfig":
        """Create CleaningConfig from dictionary."""
        gap_fill_dict = config_dict.get('gap_fill') or {}
        gap_fill = GapFillRules(
            entity_key=list(gap_fill_dict.get('entity_key', ['company'])),
            fields=list(gap_fill_dict.get('fields', ['industry'])),
        )

        tables_dict = config_dict.get('tables') or {}
        tables = TableNames(
            source=tables_dict.get('source', 'layoffs'),
            target=tables_dict.get('target', 'layoffs_staging'),
        )

        config = cls(
            industry_prefixes=dict(
                config_dict.get('industry_prefixes', DEFAULT_INDUSTRY_PREFIXES)
            ),
            date_formats=list(config_dict.get('date_formats', DEFAULT_DATE_FORMATS)),
            gap_fill=gap_fill,
            strip_country_trailing_period=bool(
                config_dict.get('strip_country_trailing_period', True)
            ),
            prune_empty_metrics=bool(config_dict.get('prune_empty_metrics', False)),
            tables=tables,
        )
        config.validate()
        return config


def load_cleaning_config(config_path: Optional[str] = None) -> CleaningConfig:
    """
    Load cleaning configuration from YAML file.

    Args:
        config_path: Path to cleaning.yml file. If None, uses default location.

    Returns:
        CleaningConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid

    Example:
        >>> config = load_cleaning_config('config/cleaning.yml')
        >>> config.industry_prefixes
        {'Crypto': 'Crypto'}
    """
    if config_path is None:
        # Default path relative to project root
        project_root = Path(__file__).parent.parent.parent
        config_path = str(project_root / "config" / "cleaning.yml")

    logger.info("Loading cleaning configuration", extra={'config_path': config_path})

    try:
        with open(config_path) as f:
            config_dict = yaml.safe_load(f)

        if not config_dict:
            logger.warning("Empty configuration file, using defaults")
            config_dict = {}

        config = CleaningConfig.from_dict(config_dict)

        logger.info(
            "Cleaning configuration loaded successfully",
            extra={
                'industry_prefixes': len(config.industry_prefixes),
                'date_formats': config.date_formats,
                'gap_fill_fields': config.gap_fill.fields,
            }
        )

        return config

    except FileNotFoundError:
        logger.error(f"Configuration file not found: {config_path}")
        raise
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML: {e}")
        raise ValueError(f"Invalid YAML in config file: {e}") from e
    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        raise ValueError(f"Failed to load configuration: {e}") from e
