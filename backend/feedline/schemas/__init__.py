"""Pydantic models shared across the request pipeline."""
