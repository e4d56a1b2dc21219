"""
Root pytest configuration for the Django project.

Django settings are located through ``DJANGO_SETTINGS_MODULE``; the app
directory is put on the path by ``pythonpath`` in pyproject.toml.
Project-wide fixtures and hooks live in app/conftest.py, app-specific
fixtures in each app's tests/conftest.py.
"""

import os

# Ensure Django settings are configured before any tests run
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
