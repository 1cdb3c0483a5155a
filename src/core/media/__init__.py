"""
Media records, asset locators and the upload workflow.
"""

from .locators import AssetLocator, LocatorError, build_locator, parse_locator, resolve_locator
from .models import AspectRatio, Video, classify_aspect_ratio, classify_ratio
from .uploads import MediaUploadService, new_object_name

__all__ = [
    "AspectRatio",
    "AssetLocator",
    "LocatorError",
    "MediaUploadService",
    "Video",
    "build_locator",
    "classify_aspect_ratio",
    "classify_ratio",
    "new_object_name",
    "parse_locator",
    "resolve_locator",
]
