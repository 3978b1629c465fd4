#!/usr/bin/env python3
"""
Configuration classes for the checkout bridge.

Provides configuration management for the channel, the native executors,
result timeouts, capability selection and logging.
"""

"""
Copyright (c) 2025 Firefly Software Solutions Inc.

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at:

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

DEFAULT_ENV_PREFIX = "CHECKOUTBRIDGE_"


class LoggingConfig(BaseModel):
    """Configuration for the bridge logging system."""

    level: str = Field(default="INFO", description="Logging level")
    format: str = Field(default="json", description="Log format: json or text")
    native_log_level: str = Field(default="INFO", description="Native-side logging level")
    output_file: Optional[str] = Field(default=None, description="Log output file path")
    max_file_size_mb: int = Field(default=100, ge=1, description="Maximum log file size in MB")
    backup_count: int = Field(default=5, ge=1, description="Number of backup log files to keep")

    @field_validator("level", "native_log_level")
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("format")
    @classmethod
    def validate_format(cls, v):
        valid_formats = {"json", "text"}
        if v.lower() not in valid_formats:
            raise ValueError(f"Log format must be one of: {valid_formats}")
        return v.lower()


class BridgeConfig(BaseModel):
    """Main configuration class for a bridge session."""

    channel_name: str = Field(
        default="checkout_bridge", min_length=1, description="Name of the bridge channel"
    )
    platform: str = Field(
        default="sandbox", description="Payment capability to load (see CapabilityRegistry)"
    )
    executor_workers: int = Field(
        default=2, ge=1, le=32, description="Background worker threads per controller"
    )
    result_timeout_ms: Optional[int] = Field(
        default=120000,
        ge=100,
        description="Deadline for an asynchronous tokenize/submit/sheet result; None disables it",
    )
    dispose_timeout_ms: int = Field(
        default=5000, ge=0, description="How long dispose waits for the native side to acknowledge"
    )

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    @field_validator("platform")
    @classmethod
    def normalize_platform(cls, v):
        if not v or not v.strip():
            raise ValueError("platform must not be empty")
        return v.strip().lower()

    @property
    def result_timeout_seconds(self) -> Optional[float]:
        if self.result_timeout_ms is None:
            return None
        return self.result_timeout_ms / 1000

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> "BridgeConfig":
        """Load configuration from a JSON or YAML file."""
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        content = path.read_text(encoding="utf-8")

        try:
            if path.suffix.lower() in [".yml", ".yaml"]:
                data = yaml.safe_load(content)
            else:
                data = json.loads(content)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ValueError(f"Failed to parse configuration file: {e}")

        return cls(**(data or {}))

    @classmethod
    def from_env(cls, prefix: str = DEFAULT_ENV_PREFIX) -> "BridgeConfig":
        """Load configuration from environment variables.

        Only explicitly set variables are applied; everything else keeps the
        model defaults.
        """
        config_data: Dict[str, Any] = {}

        def _optional_int(value: str) -> Optional[int]:
            return None if value.lower() in ("", "none", "off") else int(value)

        env_mappings = {
            f"{prefix}CHANNEL_NAME": ("channel_name", str),
            f"{prefix}PLATFORM": ("platform", str),
            f"{prefix}EXECUTOR_WORKERS": ("executor_workers", int),
            f"{prefix}RESULT_TIMEOUT_MS": ("result_timeout_ms", _optional_int),
            f"{prefix}DISPOSE_TIMEOUT_MS": ("dispose_timeout_ms", int),
            f"{prefix}LOG_LEVEL": ("logging.level", str),
            f"{prefix}LOG_FORMAT": ("logging.format", str),
            f"{prefix}NATIVE_LOG_LEVEL": ("logging.native_log_level", str),
            f"{prefix}LOG_FILE": ("logging.output_file", str),
        }

        for env_var, (config_key, converter) in env_mappings.items():
            value = os.getenv(env_var)
            if value is not None:
                try:
                    converted_value = converter(value)
                    # Handle nested keys
                    if "." in config_key:
                        parts = config_key.split(".")
                        current = config_data
                        for part in parts[:-1]:
                            current = current.setdefault(part, {})
                        current[parts[-1]] = converted_value
                    else:
                        config_data[config_key] = converted_value
                except (ValueError, TypeError) as e:
                    raise ValueError(f"Invalid value for {env_var}: {value} ({e})")

        return cls(**config_data)

    def to_file(self, config_path: Union[str, Path], format: str = "auto") -> None:
        """Save configuration to a file."""
        path = Path(config_path)

        if format == "auto":
            format = "yaml" if path.suffix.lower() in [".yml", ".yaml"] else "json"

        data = self.model_dump()

        if format == "yaml":
            content = yaml.dump(data, default_flow_style=False, sort_keys=False, indent=2)
        else:
            content = json.dumps(data, indent=2)

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")

    def validate_configuration(self) -> List[str]:
        """Validate the configuration and return any warnings."""
        warnings = []

        if self.result_timeout_ms is None:
            warnings.append(
                "result_timeout_ms is disabled; a hung payment operation stays pending until dispose"
            )
        elif self.result_timeout_ms < 5000:
            warnings.append("result_timeout_ms below 5s may cut off real payment sheets")

        if self.executor_workers > 8:
            warnings.append("More than 8 executor workers per controller is rarely useful")

        if self.platform != "sandbox" and self.logging.level == "DEBUG":
            warnings.append("DEBUG logging on a real payment platform may log sensitive metadata")

        return warnings


class ConfigurationManager:
    """Utility class for managing configurations."""

    @staticmethod
    def create_default_config_file(path: Union[str, Path], format: str = "yaml") -> None:
        """Create a default configuration file."""
        BridgeConfig().to_file(path, format)

    @staticmethod
    def merge_configs(*configs: BridgeConfig) -> BridgeConfig:
        """Merge multiple configurations, with later configs taking precedence."""
        if not configs:
            return BridgeConfig()

        merged_data = configs[0].model_dump()

        for config in configs[1:]:
            config_data = config.model_dump(exclude_unset=True)
            merged_data = ConfigurationManager._deep_merge(merged_data, config_data)

        return BridgeConfig(**merged_data)

    @staticmethod
    def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = ConfigurationManager._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    @staticmethod
    def load_config(
        config_file: Optional[Union[str, Path]] = None,
        env_prefix: str = DEFAULT_ENV_PREFIX,
        use_env: bool = True,
    ) -> BridgeConfig:
        """Load configuration from file and/or environment variables."""

        # Start with base configuration (file or defaults)
        if config_file:
            try:
                base_config = BridgeConfig.from_file(config_file)
            except FileNotFoundError:
                base_config = BridgeConfig()  # File doesn't exist, use defaults
        else:
            base_config = BridgeConfig()

        if not use_env:
            return base_config

        env_config = BridgeConfig.from_env(env_prefix)
        return ConfigurationManager.merge_configs(base_config, env_config)
