"""
Orchestrator configuration using Pydantic Settings.
Environment-based configuration with the ``INTENTFLOW_`` prefix.
"""
import logging
from functools import lru_cache
from typing import Any, Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from intentflow.exceptions import RetryConfig


class OrchestratorSettings(BaseSettings):
    """Workflow orchestrator settings with validation and environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="INTENTFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Execution
    auto_execute: bool = Field(default=True, description="Start execution as soon as a workflow is created")
    max_retries: int = Field(default=3, ge=0, le=10, description="Max retries per provider call on timeout/exception")
    step_timeout: float = Field(default=30.0, gt=0, description="Per-step provider call timeout in seconds")
    simulation_mode: bool = Field(default=False, description="Simulation mode; steps fail fast instead of fabricating results")
    skill_configs: Dict[str, Dict[str, Any]] = Field(default_factory=dict, description="Per-skill overrides: max_retries, step_timeout, retry_submissions")

    # Scheduling
    scheduling_mode: str = Field(default="batched", description="Scheduling mode: batched or eager")
    failure_policy: str = Field(default="deadlock", description="Dependent handling on failure: deadlock or cascade")

    # Retry backoff
    retry_initial_delay_ms: int = Field(default=100, ge=0, description="Initial retry delay in milliseconds")
    retry_max_delay_ms: int = Field(default=10000, ge=0, description="Max retry delay in milliseconds")
    retry_backoff_base: float = Field(default=2.0, ge=1.0, description="Exponential backoff base")
    retry_jitter: bool = Field(default=True, description="Add random jitter to retry delays")

    # Logging
    verbose: bool = Field(default=False, description="Verbose step-level logging")
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="text", description="Log format: json or text")
    log_file: Optional[str] = Field(default=None, description="Log file path")

    @field_validator("scheduling_mode")
    @classmethod
    def validate_scheduling_mode(cls, v: str) -> str:
        """Validate scheduling mode is one of allowed values."""
        allowed = ["batched", "eager"]
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"Scheduling mode must be one of {allowed}")
        return v_lower

    @field_validator("failure_policy")
    @classmethod
    def validate_failure_policy(cls, v: str) -> str:
        """Validate failure policy is one of allowed values."""
        allowed = ["deadlock", "cascade"]
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"Failure policy must be one of {allowed}")
        return v_lower

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"Log level must be one of {allowed}")
        return v_upper

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format is valid."""
        allowed = ["json", "text"]
        if v not in allowed:
            raise ValueError(f"Log format must be one of {allowed}")
        return v

    def get_log_level(self) -> int:
        """Get logging level as integer."""
        if self.verbose:
            return logging.DEBUG
        return getattr(logging, self.log_level)

    def get_skill_config(self, skill_id: str) -> Dict[str, Any]:
        """Configuration overrides for one skill (empty if none)."""
        return dict(self.skill_configs.get(skill_id, {}))

    def retry_config(self, max_retries: Optional[int] = None) -> RetryConfig:
        """Backoff configuration for provider calls."""
        return RetryConfig(
            max_retries=self.max_retries if max_retries is None else max_retries,
            initial_delay_ms=self.retry_initial_delay_ms,
            max_delay_ms=self.retry_max_delay_ms,
            exponential_base=self.retry_backoff_base,
            jitter=self.retry_jitter,
        )


@lru_cache(maxsize=1)
def get_settings() -> OrchestratorSettings:
    """
    Get cached process-wide default settings.

    Returns:
        OrchestratorSettings: Settings loaded from the environment
    """
    return OrchestratorSettings()
