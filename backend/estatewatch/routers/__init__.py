from .auth import router as auth_router
from .navigation import router as navigation_router
from .visitors import router as visitors_router
from .gate import router as gate_router
from .dashboard import router as dashboard_router

__all__ = [
    "auth_router",
    "navigation_router",
    "visitors_router",
    "gate_router",
    "dashboard_router"
]
