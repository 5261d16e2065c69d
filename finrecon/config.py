"""Configuration management for the reconciliation tool."""
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from dotenv import load_dotenv

from .exceptions import ConfigurationError

# Load environment variables
load_dotenv()


def _env_decimal(name: str, default: str) -> Decimal:
    raw = os.getenv(name, default)
    try:
        value = Decimal(raw.strip())
    except InvalidOperation:
        value = None
    if value is None or not value.is_finite():
        raise ConfigurationError(f"Invalid decimal for {name}: '{raw}'", setting=name)
    return value


def _env_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"Invalid integer for {name}: '{raw}'", setting=name)


@dataclass
class MatchingConfig:
    """Matching cascade and smart fix configuration."""
    amount_epsilon: Decimal = field(
        default_factory=lambda: _env_decimal("AMOUNT_EPSILON", "0.01")
    )
    date_window_days: int = field(
        default_factory=lambda: _env_int("SMART_FIX_DATE_WINDOW_DAYS", "2")
    )
    # Descriptions longer than this tolerate a larger edit distance
    typo_long_id_length: int = 5
    typo_max_distance_long: int = 2
    typo_max_distance_short: int = 1

    # Confidence scores (0-100)
    confidence_variance_transposition: int = 90
    confidence_variance_scaling: int = 85
    confidence_id_typo: int = 85
    confidence_orphan_scaling: int = 80
    confidence_orphan_transposition: int = 75

    def __post_init__(self):
        if self.amount_epsilon <= 0:
            raise ConfigurationError("Amount tolerance must be positive", setting="AMOUNT_EPSILON")
        if self.date_window_days < 0:
            raise ConfigurationError(
                "Smart fix date window cannot be negative", setting="SMART_FIX_DATE_WINDOW_DAYS"
            )


@dataclass
class NarrativeConfig:
    """Hosted model configuration for narrative reports."""
    api_key: str = field(
        default_factory=lambda: os.getenv("GEMINI_API_KEY", os.getenv("API_KEY", ""))
    )
    model: str = field(default_factory=lambda: os.getenv("GEMINI_MODEL", "gemini-2.5-flash"))
    endpoint: str = "https://generativelanguage.googleapis.com/v1beta"
    timeout_seconds: int = 30
    sample_size: int = 15

    def is_configured(self) -> bool:
        return bool(self.api_key)


@dataclass
class Config:
    """Main application configuration."""
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    narrative: NarrativeConfig = field(default_factory=NarrativeConfig)
    reports_dir: Path = field(
        default_factory=lambda: Path(os.getenv("REPORTS_DIR", "./reports"))
    )
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))


# Global config instance
config = Config()
