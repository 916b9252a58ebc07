"""Configuration module for the Kafka user provider."""
from .settings import AppConfig, load_settings

__all__ = ["AppConfig", "load_settings"]
