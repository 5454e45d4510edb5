"""
Shared helpers and configuration.
"""
