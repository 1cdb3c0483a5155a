"""
Core business logic for media uploads.

This module is framework-agnostic - it doesn't import FastAPI, Snowflake,
boto3 or any infrastructure concerns. Storage, persistence and media tools
are reached through protocols that the infrastructure layer implements.
"""
