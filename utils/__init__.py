# utils/__init__.py
"""
Utils Package for the Schedule Upload service

Spreadsheet reading, schedule grammar, validation and shared helpers.
"""
