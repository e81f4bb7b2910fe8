"""API routes."""

from payroll_cycles.api.routes.health import router as health_router
from payroll_cycles.api.routes.payroll_cycles import router as payroll_cycles_router
from payroll_cycles.api.routes.payroll_details import router as payroll_details_router

__all__ = ["health_router", "payroll_cycles_router", "payroll_details_router"]
