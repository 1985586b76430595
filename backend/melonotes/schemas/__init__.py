"""Pydantic request/response models, grouped by resource."""
