"""Database models and bootstrap helpers."""
