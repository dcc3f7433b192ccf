"""Pydantic schemas for API payloads and canonical records."""
