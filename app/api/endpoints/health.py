"""
Health check and monitoring endpoints.

Provides health status for the database plus a few operational counters.
"""

import logging
from typing import Dict, Any
from fastapi import APIRouter, Depends, status
from sqlalchemy import func, text
from sqlalchemy.orm import Session
from datetime import datetime, timezone

from app.core.database import get_db
from app.core.deps import get_rate_limiters
from app.core.rate_limiter import RateLimiters

router = APIRouter(tags=["Health"])
logger = logging.getLogger(__name__)


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check() -> Dict[str, str]:
    """
    Basic health check endpoint.

    Returns 200 OK if the service is running.
    Use this for simple uptime monitoring and load balancer health checks.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/health/detailed", status_code=status.HTTP_200_OK)
def detailed_health_check(db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Detailed health check with dependency status.

    Checks:
    - Database connectivity
    """
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {}
    }

    try:
        db.execute(text("SELECT 1"))
        health_status["checks"]["database"] = {
            "status": "healthy",
            "message": "Database connection successful"
        }
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = {
            "status": "unhealthy",
            "message": f"Database error: {str(e)}"
        }

    return health_status


@router.get("/metrics", status_code=status.HTTP_200_OK)
def get_metrics(
    db: Session = Depends(get_db),
    limiters: RateLimiters = Depends(get_rate_limiters),
) -> Dict[str, Any]:
    """
    Application metrics endpoint.

    Returns basic operational metrics:
    - Stores and customers
    - Active customer sessions
    - Tracked rate limit keys (in-memory backend only)
    """
    from app.models.store import Store
    from app.models.customer import Customer
    from app.models.customer_session import CustomerSession

    try:
        now = datetime.now(timezone.utc)
        metrics = {
            "timestamp": now.isoformat(),
            "metrics": {
                "total_stores": db.query(func.count(Store.id)).scalar() or 0,
                "total_customers": db.query(func.count(Customer.id)).scalar() or 0,
                "active_sessions": db.query(func.count(CustomerSession.id)).filter(
                    CustomerSession.expires_at > now
                ).scalar() or 0,
            }
        }

        for name, limiter in (("send_code", limiters.send_code), ("verify_code", limiters.verify_code)):
            if hasattr(limiter, "__len__"):
                metrics["metrics"][f"rate_limit_keys_{name}"] = len(limiter)

        return metrics
    except Exception as e:
        logger.error(f"Failed to retrieve metrics: {e}")
        return {
            "error": "Failed to retrieve metrics",
            "message": str(e)
        }
