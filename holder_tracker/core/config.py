"""
Configuration loader for holder-tracker.

Pydantic models validate every setting; `load_settings` merges an optional
YAML file with environment variables and returns a `Settings` object that is
passed explicitly to the tracker (there is no module-level configuration).

Environment overrides follow the nested structure of the models, e.g.
`filters.whale_threshold_percent` is overridden by
`HOLDER_TRACKER_FILTERS__WHALE_THRESHOLD_PERCENT=2.5`.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from loguru import logger
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_core import PydanticCustomError

from holder_tracker.onchain.addresses import is_valid_address

ENV_PREFIX = "HOLDER_TRACKER"

DEFAULT_MINT = "CzLSujWBLFsSjncfkh59rUFqvafWcY5tzedWJSuypump"
DEFAULT_RPC_ENDPOINT = "https://api.mainnet-beta.solana.com"


class ConfigError(Exception):
    """Custom exception for configuration-related errors."""
    pass


class RpcSettings(BaseModel):
    """Connection settings for the Solana JSON-RPC endpoint."""
    endpoint: str = DEFAULT_RPC_ENDPOINT
    commitment: str = "confirmed"
    timeout_sec: float = Field(120.0, gt=0)
    max_retries: int = Field(3, ge=0)
    backoff_sec: float = Field(1.0, ge=0)
    max_backoff_sec: float = Field(30.0, ge=0)


class TokenSettings(BaseModel):
    """The token being snapshotted."""
    mint: str = DEFAULT_MINT
    decimals: int = Field(6, ge=0, le=18)
    symbol: str = "PUMP"

    @field_validator('mint')
    def mint_must_be_address(cls, v):
        if not is_valid_address(v):
            raise PydanticCustomError(
                "mint_invalid",
                "Mint '{mint}' is not a base58 encoded 32-byte address",
                {"mint": v},
            )
        return v


class FilterSettings(BaseModel):
    """Holder classification knobs.

    `min_balance_to_include` is in the token's smallest unit; 0 disables the
    dust filter. `service_registry_dir` points at versioned
    `service_wallets.v<N>.json` files merged into the service set.
    """
    exclude_services: bool = True
    exclude_whales: bool = True
    whale_threshold_percent: float = Field(1.0, ge=0, allow_inf_nan=False)
    min_balance_to_include: int = Field(1_000_000, ge=0)
    custom_service_wallets: List[str] = Field(default_factory=list)
    service_registry_dir: Optional[str] = None


class ReportSettings(BaseModel):
    """Settings for the JSON snapshot reports."""
    data_dir: str = "data"
    max_holders_to_save: Optional[int] = Field(None, gt=0)
    dust_preview_limit: int = Field(100, ge=0)
    include_excluded: bool = True


class LoggingSettings(BaseModel):
    """Settings for logging configuration."""
    level: str = Field("INFO", description="The logging level, e.g., DEBUG, INFO, WARNING.")
    file: Optional[str] = None


class Settings(BaseModel):
    rpc: RpcSettings = RpcSettings()
    token: TokenSettings = TokenSettings()
    filters: FilterSettings = FilterSettings()
    reports: ReportSettings = ReportSettings()
    logging: LoggingSettings = LoggingSettings()


# --- Helper Functions ---

def _load_config_from_yaml(path: Path) -> Dict[str, Any]:
    """Loads the YAML configuration file."""
    if not path.is_file():
        raise ConfigError(f"Configuration file not found at: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing YAML file at {path}: {e}") from e


def _get_env_overrides(prefix: str = ENV_PREFIX) -> Dict[str, Any]:
    """
    Parses environment variables and converts them into a nested dict.
    e.g., HOLDER_TRACKER_FILTERS__EXCLUDE_WHALES=false becomes
    {'filters': {'exclude_whales': False}}
    """
    overrides: Dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(prefix + "_"):
            continue
        parts = key.removeprefix(prefix).strip("_").lower().split("__")

        # Addresses and paths stay strings even when they look numeric
        if parts[-1] in ('mint', 'endpoint', 'commitment', 'symbol', 'data_dir', 'service_registry_dir', 'file'):
            parsed_value: Any = value
        elif (value.startswith('[') and value.endswith(']')) or \
             (value.startswith('{') and value.endswith('}')) or \
             value.lower() in ['true', 'false', 'null'] or \
             value.replace('.', '', 1).isdigit():
            try:
                parsed_value = json.loads(value.lower() if value.lower() in ['true', 'false', 'null'] else value)
            except json.JSONDecodeError:
                parsed_value = value
        else:
            parsed_value = value

        d = overrides
        for part in parts[:-1]:
            d = d.setdefault(part, {})
        d[parts[-1]] = parsed_value
    return overrides


def _merge_configs(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merges the override dict into the base dict.
    Overwrites values, dictionaries, and lists.
    """
    for key, value in overrides.items():
        if isinstance(value, dict) and key in base and isinstance(base[key], dict):
            base[key] = _merge_configs(base[key], value)
        else:
            base[key] = value
    return base


# --- Public API ---

def load_settings(path: Optional[str] = None) -> Settings:
    """
    Loads, validates, and returns the application settings.

    1. Loads the base configuration from the YAML file, when a path is given.
    2. Scans environment variables for overrides (prefixed with "HOLDER_TRACKER_").
    3. Merges the environment overrides into the base configuration.
    4. Validates the final configuration against the `Settings` model.

    Raises:
        ConfigError: If the file is not found, cannot be parsed, or if
                     validation fails.
    """
    if path:
        logger.info(f"Loading settings from '{path}'...")
        base_config = _load_config_from_yaml(Path(path))
    else:
        logger.info("No settings file given; using defaults and environment overrides")
        base_config = {}

    final_config = _merge_configs(base_config, _get_env_overrides())

    try:
        settings = Settings.model_validate(final_config)
    except ValidationError as e:
        error_details = e.errors()
        error_msg = f"Configuration validation failed with {len(error_details)} error(s):\n"
        for error in error_details:
            loc = " -> ".join(map(str, error['loc'])) if error['loc'] else "root"
            error_msg += f"  - Location: {loc}\n    Message: {error['msg']}\n"
        logger.error(error_msg)
        raise ConfigError("Failed to validate settings.") from e

    logger.success("Settings loaded and validated successfully.")
    return settings
