"""Business modules.

Each module is self-contained with its own schemas, services, and
domain logic; infrastructure lives under src.infrastructure.
"""
