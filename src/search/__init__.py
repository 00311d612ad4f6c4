"""Proxy for Hacker News search and items, with a local fallback."""
