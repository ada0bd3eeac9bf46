from fastapi import APIRouter
from timegate.api.v1.endpoints import (
    auth,
    users,
)

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
