"""Domain layer — descriptors, geometry, and strip planning.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""
