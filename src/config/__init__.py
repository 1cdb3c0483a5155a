"""
Configuration for the Tubely API.

Values come from the environment (or .env). Mock modes let the service
run without Snowflake, S3 or FFmpeg.
"""

from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
