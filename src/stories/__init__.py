"""Stories, jobs and polls authored locally.

Router is not exported here to avoid circular imports.
Import directly from src.stories.router when needed.
"""
