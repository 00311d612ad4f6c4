"""Users: accounts, profiles, follows, bookmarks and the email blocklist.

Router is not exported here to avoid circular imports.
Import directly from src.users.router when needed.
"""
