"""
authaccess contrib module - Framework integrations.

- Pydantic - GuardedModel, a BaseModel with gated assignment

Usage:
    >>> from authaccess.contrib.pydantic import GuardedModel
"""
