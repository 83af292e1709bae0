"""API routers for the analysis proxy."""

from analysis_proxy.routers import analyze, health, info

__all__ = ["analyze", "health", "info"]
