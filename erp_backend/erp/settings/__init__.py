# erp/settings/__init__.py
"""
PATH: erp/settings/__init__.py

Settings package entrypoint.

We intentionally do NOT import dev/prod here to avoid accidental environment coupling.
Use DJANGO_SETTINGS_MODULE to select:
- erp.settings.dev   (local development + tests)
- erp.settings.prod  (production)
"""
