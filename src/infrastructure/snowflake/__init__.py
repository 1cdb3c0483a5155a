"""
Snowflake persistence for video metadata records.
"""
