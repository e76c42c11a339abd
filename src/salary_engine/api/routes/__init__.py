"""API routes."""

from salary_engine.api.routes.health import router as health_router
from salary_engine.api.routes.salaries import router as salaries_router

__all__ = ["health_router", "salaries_router"]
