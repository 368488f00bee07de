import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from autocrew.api import auth, admin, clients, crews, conversations, knowledge_base
from autocrew.config import get_settings
from autocrew.db.postgres import engine, Base
from autocrew.errors import CodeAllocationConflict
from autocrew.middleware.edge_gate import EdgeGateMiddleware

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    await engine.dispose()


app = FastAPI(
    title="AutoCrew API",
    description="Multi-tenant console for AI support and lead-generation crews",
    version="0.1.0",
    lifespan=lifespan
)

# Added first so CORS wraps it and rejected requests still carry CORS headers
app.add_middleware(EdgeGateMiddleware, cookie_name=settings.session_cookie_name)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CodeAllocationConflict)
async def code_allocation_conflict_handler(request: Request, exc: CodeAllocationConflict):
    logger.error("%s", exc)
    return JSONResponse(
        status_code=409,
        content={"detail": f"A {exc.resource} with this code already exists. Please try again."},
    )


app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(clients.router, prefix="/api/clients", tags=["clients"])
app.include_router(crews.router, prefix="/api/crews", tags=["crews"])
app.include_router(knowledge_base.router, prefix="/api/crews", tags=["knowledge-base"])
app.include_router(conversations.router, prefix="/api/conversations", tags=["conversations"])
app.include_router(admin.router, prefix="/api/admin", tags=["admin"])


@app.get("/health")
async def health():
    return {"status": "healthy"}
