# engines/__init__.py
"""
Pipeline engines: record normalization, API client and save orchestration
"""
