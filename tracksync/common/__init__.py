"""
Shared building blocks: configuration, logging, exceptions and models.
"""
