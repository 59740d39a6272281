"""
Backend package for the civic engagement platform.

Provides a FastAPI application for user accounts, community project
proposals with voting, townhall scheduling and a mirrored feed of X posts
about the state.
"""
