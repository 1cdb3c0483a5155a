"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- auth: JWT bearer tokens (python-jose)
- snowflake: Video metadata persistence
- storage: Object storage (S3, local directory, in-memory)
- video: FFmpeg/FFprobe

These wrappers translate between external formats and our domain models.
"""
