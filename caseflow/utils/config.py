"""Configuration management for the case management backend."""

import os
import yaml
from dataclasses import dataclass
from typing import Any, Dict

from dotenv import load_dotenv

from .errors import ConfigError
from .logging import DEFAULT_FORMAT


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = DEFAULT_FORMAT
    file: str = ""


@dataclass
class StorageConfig:
    """Sample data configuration."""
    sample_cases_path: str = "data/sample_cases/cases.yaml"
    load_sample_cases: bool = True


@dataclass
class KpiConfig:
    """Dashboard KPI settings."""
    recent_window_days: int = 30
    labor_utilization: int = 75


@dataclass
class Config:
    """Main configuration class."""
    logging: LoggingConfig
    storage: StorageConfig
    kpi: KpiConfig
    
    @classmethod
    def default(cls) -> "Config":
        """Configuration used when no file is supplied (tests, notebooks)."""
        return cls(logging=LoggingConfig(), storage=StorageConfig(), kpi=KpiConfig())
    
    @classmethod
    def load(cls, config_path: str = "config.yaml") -> "Config":
        """
        Load configuration from file and environment variables.
        
        A ``.env`` file in the working directory is read first. Environment
        variables override config file values:
        - LOG_LEVEL
        - LOG_FILE
        - SAMPLE_CASES_PATH
        - KPI_RECENT_WINDOW_DAYS
        
        Args:
            config_path: Path to YAML configuration file
            
        Returns:
            Config instance with loaded settings
            
        Raises:
            ConfigError: If the file is missing or a value has the wrong type
        """
        load_dotenv()
        
        if not os.path.exists(config_path):
            raise ConfigError.missing_file(config_path)
        
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}
        
        if not isinstance(config_data, dict):
            raise ConfigError.invalid_value("<root>", config_data)
        
        log_section = _section(config_data, "logging")
        logging_config = LoggingConfig(
            level=os.getenv("LOG_LEVEL", log_section.get("level", "INFO")),
            format=log_section.get("format", DEFAULT_FORMAT),
            file=os.getenv("LOG_FILE", log_section.get("file") or "")
        )
        
        storage_section = _section(config_data, "storage")
        storage_config = StorageConfig(
            sample_cases_path=os.getenv(
                "SAMPLE_CASES_PATH",
                storage_section.get("sample_cases_path", StorageConfig.sample_cases_path)
            ),
            load_sample_cases=bool(storage_section.get("load_sample_cases", True))
        )
        
        kpi_section = _section(config_data, "kpi")
        raw_window = os.getenv(
            "KPI_RECENT_WINDOW_DAYS",
            kpi_section.get("recent_window_days", KpiConfig.recent_window_days)
        )
        kpi_config = KpiConfig(
            recent_window_days=_as_int("kpi.recent_window_days", raw_window),
            labor_utilization=_as_int(
                "kpi.labor_utilization",
                kpi_section.get("labor_utilization", KpiConfig.labor_utilization)
            )
        )
        
        return cls(
            logging=logging_config,
            storage=storage_config,
            kpi=kpi_config,
        )


def _section(config_data: Dict[str, Any], key: str) -> Dict[str, Any]:
    section = config_data.get(key) or {}
    if not isinstance(section, dict):
        raise ConfigError.invalid_value(key, section)
    return section


def _as_int(key: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError.invalid_value(key, value, e) from e
