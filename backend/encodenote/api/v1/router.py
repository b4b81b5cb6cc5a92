from fastapi import APIRouter
from encodenote.api.v1.endpoints import vault, realtime

api_router = APIRouter()
api_router.include_router(vault.router, prefix="/note", tags=["note"])

ws_router = APIRouter()
ws_router.include_router(realtime.router)
