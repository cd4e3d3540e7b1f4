"""API routers."""

from api.routers import admin, cron, health, publish

__all__ = ["admin", "cron", "health", "publish"]
