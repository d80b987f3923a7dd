"""
Second-degree scout.

Discovers people at a target company through an ordered chain of providers,
normalizes them into ranked targets, maps connector paths from the seeker's
own contacts and persists every run with its diagnostics.

Entry point: ``src.services.scout.runner.run_scout``.
"""
