"""Pytest bootstrap configuration.

Ensure environment variables are set before test collection and module
imports that depend on application settings.
"""
import os

# Keep settings independent of any local .env profile
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("DEFAULT_STORAGE_SERVICE", "storj")
