"""Content reports filed by users and triaged by admins.

Router is not exported here to avoid circular imports.
Import directly from src.reports.router when needed.
"""
