"""Admin moderation and analytics.

Router is not exported here to avoid circular imports.
Import directly from src.admin.router when needed.
"""
