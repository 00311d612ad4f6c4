"""Threaded comments on local and Hacker News stories.

Router is not exported here to avoid circular imports.
Import directly from src.comments.router when needed.
"""
