import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from dotenv import load_dotenv

from .resolver.schema import ResourceKind

"""
Configuration Management for DaVinci Terraformer

This module provides centralized configuration management with validation
and environment variable handling for export runs.
"""

logger = logging.getLogger(__name__)

VALID_REGIONS = ["NA", "EU", "AP", "CA"]


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


def _env_list(name: str) -> List[str]:
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class LoggingConfig:
    """Configuration for logging behavior."""

    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    format: str = field(default_factory=lambda: os.getenv("LOG_FORMAT", "console"))

    def __post_init__(self) -> None:
        """Validate logging configuration."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.level.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        self.level = self.level.upper()
        if self.format not in ("console", "json"):
            raise ValueError("Log format must be 'console' or 'json'")

    def get_log_level(self) -> int:
        """Convert string log level to logging constant."""
        level_attr = getattr(logging, self.level, None)
        if level_attr is None:
            raise ValueError(f"Invalid log level: {self.level}")
        return int(level_attr)


@dataclass
class ExportConfig:
    """Configuration for one DaVinci export run."""

    environment_id: str = field(
        default_factory=lambda: os.getenv("PINGONE_ENVIRONMENT_ID", "")
    )
    region: str = field(default_factory=lambda: os.getenv("PINGONE_REGION", "NA"))
    skip_dependencies: bool = field(
        default_factory=lambda: _env_flag("DAVINCI_SKIP_DEPENDENCIES")
    )
    generate_imports: bool = field(
        default_factory=lambda: _env_flag("DAVINCI_GENERATE_IMPORTS")
    )
    use_variable_references: bool = field(
        default_factory=lambda: _env_flag("DAVINCI_USE_VARIABLE_REFERENCES")
    )
    continue_on_parse_error: bool = field(
        default_factory=lambda: _env_flag("DAVINCI_CONTINUE_ON_PARSE_ERROR")
    )
    deduplicate_hierarchy: bool = field(
        default_factory=lambda: _env_flag("DAVINCI_DEDUPLICATE_HIERARCHY")
    )
    strict_mode: bool = field(default_factory=lambda: _env_flag("DAVINCI_STRICT_MODE"))
    include_kinds: List[str] = field(
        default_factory=lambda: _env_list("DAVINCI_INCLUDE_KINDS")
    )
    # Entries of the form "<kind>:<id>"
    excluded_resources: List[str] = field(
        default_factory=lambda: _env_list("DAVINCI_EXCLUDED_RESOURCES")
    )

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self.region = self.region.upper()
        if self.region not in VALID_REGIONS:
            raise ValueError(
                f"Invalid region: {self.region} (valid regions: {VALID_REGIONS})"
            )
        if self.skip_dependencies and not self.environment_id:
            raise ValueError(
                "PINGONE_ENVIRONMENT_ID is required when skipping dependencies"
            )
        if self.generate_imports and not self.environment_id:
            raise ValueError(
                "PINGONE_ENVIRONMENT_ID is required when generating import blocks"
            )
        # Fail early on unknown kinds or malformed exclusions
        self.get_included_kinds()
        self.get_excluded_resources()

    def get_included_kinds(self) -> Set[ResourceKind]:
        """Resolve include_kinds into ResourceKind members."""
        return {ResourceKind.parse(value) for value in self.include_kinds}

    def get_excluded_resources(self) -> List[Tuple[ResourceKind, str]]:
        """Resolve "<kind>:<id>" exclusion entries."""
        excluded = []
        for entry in self.excluded_resources:
            kind_part, sep, resource_id = entry.partition(":")
            if not sep or not resource_id:
                raise ValueError(
                    f"Excluded resource '{entry}' must have the form <kind>:<id>"
                )
            excluded.append((ResourceKind.parse(kind_part), resource_id))
        return excluded

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for serialization."""
        return {
            "environment_id": self.environment_id,
            "region": self.region,
            "skip_dependencies": self.skip_dependencies,
            "generate_imports": self.generate_imports,
            "use_variable_references": self.use_variable_references,
            "continue_on_parse_error": self.continue_on_parse_error,
            "deduplicate_hierarchy": self.deduplicate_hierarchy,
            "strict_mode": self.strict_mode,
            "include_kinds": list(self.include_kinds),
            "excluded_resources": list(self.excluded_resources),
        }

    def log_configuration_summary(self) -> None:
        """Log a summary of the current configuration."""
        logger.info("=" * 60)
        logger.info("DAVINCI TERRAFORMER CONFIGURATION")
        logger.info("=" * 60)
        logger.info(f"Environment ID: {self.environment_id or '(variable)'}")
        logger.info(f"Region: {self.region}")
        logger.info(f"   - Skip Dependencies: {self.skip_dependencies}")
        logger.info(f"   - Generate Imports: {self.generate_imports}")
        logger.info(f"   - Variable References: {self.use_variable_references}")
        logger.info(f"   - Continue On Parse Error: {self.continue_on_parse_error}")
        logger.info(f"   - Strict Mode: {self.strict_mode}")
        if self.include_kinds:
            logger.info(f"   - Included Kinds: {', '.join(self.include_kinds)}")
        if self.excluded_resources:
            logger.info(f"   - Excluded Resources: {len(self.excluded_resources)}")
        logger.info("=" * 60)


def create_export_config_from_env(
    environment_id: Optional[str] = None, **overrides: Any
) -> ExportConfig:
    """
    Factory function to create and validate export configuration.

    Values from a .env file are loaded first; explicit arguments win over the
    environment.

    Args:
        environment_id: PingOne environment ID override
        **overrides: Any other ExportConfig field

    Returns:
        ExportConfig: Validated configuration instance

    Raises:
        ValueError: If configuration is invalid
    """
    load_dotenv(override=False)
    if environment_id is not None:
        overrides["environment_id"] = environment_id
    try:
        config = ExportConfig(**overrides)
    except ValueError as e:
        logger.error(f"Configuration validation failed: {e}")
        raise
    return config
