from fastapi import APIRouter

from flowboard.api.routes import auth, invitations, workspaces

api_router = APIRouter()
api_router.include_router(auth.router, tags=["auth"])
api_router.include_router(workspaces.router, tags=["workspaces"])
api_router.include_router(invitations.router, tags=["invitations"])
