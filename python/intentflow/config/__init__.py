"""Configuration for intentflow."""

from intentflow.config.settings import OrchestratorSettings, get_settings

__all__ = ["OrchestratorSettings", "get_settings"]
