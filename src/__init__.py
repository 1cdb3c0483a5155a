"""
Tubely - media upload service for video thumbnails and fast-start MP4s.

This package contains the complete application:
- core: Framework-agnostic media records, locators and the upload workflow
- infrastructure: External service integrations
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
