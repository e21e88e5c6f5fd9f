"""API routes."""

from payroll_ledger.api.routes.health import router as health_router
from payroll_ledger.api.routes.payroll import router as payroll_router
from payroll_ledger.api.routes.salary import router as salary_router

__all__ = ["health_router", "payroll_router", "salary_router"]
