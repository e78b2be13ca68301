"""Configuration loader and validation for reconciliation settings."""

from pathlib import Path
from typing import Any, Optional
import logging

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class ScoringWeights(BaseModel):
    """Weights of the confidence score components."""

    amount: float = Field(default=0.40, ge=0.0, le=1.0)
    date: float = Field(default=0.30, ge=0.0, le=1.0)
    description: float = Field(default=0.30, ge=0.0, le=1.0)
    reference_bonus: float = Field(default=0.10, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_sum(self) -> "ScoringWeights":
        total = self.amount + self.date + self.description
        if abs(total - 1.0) > 1e-9:
            raise ValueError(
                f"amount, date and description weights must sum to 1.0 (got {total:.4f})"
            )
        return self


class AmountTolerance(BaseModel):
    """Partial credit for amounts that differ slightly from the ledger amount."""

    rounding_difference: float = 0.01
    rounding_factor: float = Field(default=0.95, ge=0.0, le=1.0)
    near_difference: float = 1.00
    near_factor: float = Field(default=0.50, ge=0.0, le=1.0)


class DateProximity(BaseModel):
    """Partial credit by distance in calendar days."""

    same_day: float = Field(default=1.0, ge=0.0, le=1.0)
    one_day: float = Field(default=0.8, ge=0.0, le=1.0)
    two_days: float = Field(default=0.5, ge=0.0, le=1.0)
    within_max_days: float = Field(default=0.2, ge=0.0, le=1.0)
    max_days: int = Field(default=5, ge=2)


class Thresholds(BaseModel):
    """Classification thresholds for a best-candidate confidence."""

    auto_match: float = Field(default=0.90, ge=0.0, le=1.0)
    review: float = Field(default=0.70, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_order(self) -> "Thresholds":
        if self.auto_match <= self.review:
            raise ValueError(
                f"auto_match ({self.auto_match}) must be greater than review ({self.review})"
            )
        return self


class CandidateSettings(BaseModel):
    """Candidate search settings."""

    window_days: int = Field(default=7, ge=0)
    min_confidence: float = Field(default=0.30, ge=0.0, le=1.0)
    default_limit: int = Field(default=5, ge=1)
    review_limit: int = Field(default=10, ge=1)


class MatchingConfig(BaseModel):
    """Configuration for the matching engine."""

    weights: ScoringWeights = Field(default_factory=ScoringWeights)
    amount_tolerance: AmountTolerance = Field(default_factory=AmountTolerance)
    date_proximity: DateProximity = Field(default_factory=DateProximity)
    thresholds: Thresholds = Field(default_factory=Thresholds)
    candidates: CandidateSettings = Field(default_factory=CandidateSettings)


class StorageConfig(BaseModel):
    """Configuration for persistence."""

    database_url: str = "sqlite:///reconciliation.db"
    echo: bool = False


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


class ReconConfig(BaseModel):
    """Main configuration model for reconciliation."""

    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a dictionary."""
    return {
        "matching": {
            "weights": {
                "amount": 0.40,
                "date": 0.30,
                "description": 0.30,
                "reference_bonus": 0.10,
            },
            "amount_tolerance": {
                "rounding_difference": 0.01,
                "rounding_factor": 0.95,
                "near_difference": 1.00,
                "near_factor": 0.50,
            },
            "date_proximity": {
                "same_day": 1.0,
                "one_day": 0.8,
                "two_days": 0.5,
                "within_max_days": 0.2,
                "max_days": 5,
            },
            "thresholds": {
                "auto_match": 0.90,
                "review": 0.70,
            },
            "candidates": {
                "window_days": 7,
                "min_confidence": 0.30,
                "default_limit": 5,
                "review_limit": 10,
            },
        },
        "storage": {
            "database_url": "sqlite:///reconciliation.db",
            "echo": False,
        },
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            "file": None,
        },
    }


def load_config(config_path: Optional[Path] = None) -> ReconConfig:
    """
    Load configuration from a YAML file or use defaults.

    Args:
        config_path: Path to YAML configuration file (optional)

    Returns:
        ReconConfig object with loaded or default settings

    Raises:
        ConfigurationError: If the file cannot be read or holds invalid values
    """
    config_dict = get_default_config()

    if config_path and config_path.exists():
        logger.info(f"Loading configuration from: {config_path}")
        try:
            with open(config_path, "r") as f:
                user_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(user_config, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {config_path}")

        # Deep merge user config into defaults
        config_dict = _deep_merge(config_dict, user_config)
        config_dict["config_file_path"] = str(config_path)
    else:
        logger.info("Using default configuration")

    try:
        return ReconConfig(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge on top

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def generate_default_config(output_path: Path) -> None:
    """
    Generate a default configuration file.

    Args:
        output_path: Path to write the configuration file
    """
    config_dict = get_default_config()

    yaml_content = """# Bank statement to ledger reconciliation configuration
# Generated configuration file - customize as needed

"""
    yaml_content += yaml.dump(config_dict, default_flow_style=False, sort_keys=False)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(yaml_content)

    logger.info(f"Generated configuration file: {output_path}")
