"""
Services module.

The scout service lives in ``src.services.scout``.
"""
