"""
Configuration layer: settings file, environment overrides and plan snapshots.
"""
