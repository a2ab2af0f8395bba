"""Configuration management for orgscope."""

import sys
from pathlib import Path
from typing import Optional

import yaml
from loguru import logger
from pydantic import BaseModel, Field, field_validator


class SearchConfig(BaseModel):
    min_length: int = 2
    debounce_ms: int = 150
    max_suggestions: int = 5

    @field_validator('min_length')
    @classmethod
    def validate_min_length(cls, v: int) -> int:
        if v < 1:
            raise ValueError("min_length must be at least 1")
        return v

    @field_validator('debounce_ms', 'max_suggestions')
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("value must not be negative")
        return v


class RenderingConfig(BaseModel):
    batch_size: int = 20
    idle_fallback_ms: int = 16  # one 60fps frame
    idle_timeout_ms: int = 100
    stagger_step_ms: int = 20
    max_stagger_ms: int = 500

    @field_validator('batch_size')
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("batch_size must be at least 1")
        return v

    @field_validator('idle_fallback_ms', 'idle_timeout_ms', 'stagger_step_ms', 'max_stagger_ms')
    @classmethod
    def validate_delay(cls, v: int) -> int:
        if v < 0:
            raise ValueError("delays must not be negative")
        return v


class CacheConfig(BaseModel):
    max_size: int = 50

    @field_validator('max_size')
    @classmethod
    def validate_max_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_size must be at least 1")
        return v


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file: Optional[Path] = None
    rotation: str = "1 day"
    retention: str = "7 days"

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        v = v.upper()
        if v not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return v


class Config(BaseModel):
    """Main configuration for the directory browser."""

    search: SearchConfig = Field(default_factory=SearchConfig)
    rendering: RenderingConfig = Field(default_factory=RenderingConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Config":
        """Load configuration from YAML file."""
        if config_path is None:
            # Try default locations
            candidates = [
                Path("orgscope.yaml"),
                Path.home() / ".config" / "orgscope" / "config.yaml",
                Path("/etc/orgscope/config.yaml"),
            ]
            for candidate in candidates:
                if candidate.exists():
                    config_path = candidate
                    break
            else:
                raise FileNotFoundError(
                    f"No config file found. Searched: {[str(c) for c in candidates]}"
                )

        logger.info(f"Loading config from: {config_path}")
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    def save(self, config_path: Path) -> None:
        """Save configuration to YAML file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w') as f:
            yaml.safe_dump(self.model_dump(mode="json"), f, default_flow_style=False)


def configure_logging(config: LoggingConfig) -> None:
    """Replace loguru's default sink with the configured ones."""
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=config.level
    )

    if config.file is not None:
        config.file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            config.file,
            rotation=config.rotation,
            retention=config.retention,
            level="DEBUG"
        )
