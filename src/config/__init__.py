"""Configuration module for the competitive intelligence chat core."""

from src.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
