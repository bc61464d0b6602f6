"""
Service Layer Package

The ProgressionEngine facade is the only entry point the host application
needs: it owns the profile, persists it and publishes change notifications.
"""

from progression_engine.services.progression_engine import ProgressionEngine

__all__ = ["ProgressionEngine"]
