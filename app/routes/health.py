# app/routes/health.py
"""
Health check endpoints for the recommendation service.
"""

import time

from fastapi import APIRouter, Request

from app.config import settings

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "feelgive-recommendations"}


@router.get("/readyz")
async def readyz(request: Request):
    """
    Readiness check: pipeline initialized and directory credentials configured.
    """
    checks = {}
    overall_ok = True

    # 1) Pipeline and cache
    service = getattr(request.app.state, "recommendations", None)
    if service is None:
        checks["pipeline"] = {"ok": False, "error": "Recommendation service not initialized"}
        overall_ok = False
    else:
        cache_stats = service.cache.stats()
        checks["pipeline"] = {
            "ok": True,
            "cache_size": cache_stats["size"],
            "cache_max_size": cache_stats["max_size"],
            "cache_hit_rate": cache_stats["hit_rate"],
        }

    # 2) Configuration checks
    config_issues = []
    if not settings.directory_configured():
        config_issues.append("EVERY_ORG_API_KEY not set")

    config_ok = not config_issues
    checks["configuration"] = {
        "ok": config_ok,
        "issues": config_issues if config_issues else None,
        "environment": settings.environment,
    }
    overall_ok = overall_ok and config_ok

    return {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}
