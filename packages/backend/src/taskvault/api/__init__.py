"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. This protects every task route without relying on
each handler to remember it. Health and auth routers are open (the auth
router protects /me itself).
"""

from fastapi import APIRouter, Depends

from taskvault.api.auth import router as auth_router
from taskvault.api.health import router as health_router
from taskvault.api.tasks import router as tasks_router
from taskvault.auth.dependencies import get_current_user

# All protected routers require authentication
_auth = [Depends(get_current_user)]

api_router = APIRouter(prefix="/api")

# Open routes: no auth required
api_router.include_router(auth_router, tags=["auth"])

# Protected routes: require a valid access token
api_router.include_router(tasks_router, tags=["tasks"], dependencies=_auth)

__all__ = ["api_router", "health_router"]
