"""Likes on stories and comments, local and Hacker News alike.

Router is not exported here to avoid circular imports.
Import directly from src.likes.router when needed.
"""
