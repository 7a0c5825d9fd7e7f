"""API routers."""

from qaptain.routers import health, runs, saved_scenarios

__all__ = ["health", "runs", "saved_scenarios"]
