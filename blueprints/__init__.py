# blueprints/__init__.py
"""
HTTP blueprints: schedule API, area authentication and upload endpoints
"""
