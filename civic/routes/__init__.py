"""
HTTP routes for the civic backend API.
"""

from fastapi import APIRouter

from civic.routes import auth, projects, townhalls, x_updates

router = APIRouter()
router.include_router(auth.router, prefix="/auth", tags=["Auth"])
router.include_router(projects.router, prefix="/projects", tags=["Projects"])
router.include_router(townhalls.router, prefix="/townhalls", tags=["Townhalls"])
router.include_router(x_updates.router, prefix="/x-updates", tags=["X Updates"])
