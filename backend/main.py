import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from encodenote.api.v1.router import api_router, ws_router
from encodenote.core.config import settings
from encodenote.core.logging_config import configure_logging
from encodenote.db.init_db import init_db
from encodenote.services.presence import PresenceHub

logger = logging.getLogger("encodenote")

app = FastAPI(
    title = settings.PROJECT_NAME,
    description="Notes are encrypted in the browser. The server only stores and relays ciphertext.",
    version="1.0.0"
)
app.state.presence = PresenceHub()

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.middleware("http")
async def limit_body_size(request: Request, call_next):
    length = request.headers.get("content-length")
    if length and length.isdigit() and int(length) > settings.MAX_BODY_BYTES:
        return JSONResponse(status_code=413, content={"detail": "Payload too large"})
    return await call_next(request)

@app.on_event("startup")
async def startup():
    configure_logging(settings.LOG_LEVEL)
    init_db()
    logger.info("%s server active, WebSocket endpoint ready at /ws", settings.PROJECT_NAME)

app.include_router(api_router, prefix="/api")
app.include_router(ws_router)

@app.get("/")
def root():
    return {"message": settings.PROJECT_NAME, "docs": "/docs"}

@app.get("/health")
def health_check():
    hub = app.state.presence
    return {"message": "healthy", "vaults": hub.vault_count(), "connections": hub.connection_count()}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
