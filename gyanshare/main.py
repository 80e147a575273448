import asyncio
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from gyanshare.background import request_sweeper
from gyanshare.config import get_settings
from gyanshare.errors import BackendFailure, GyanError
from gyanshare.routers import auth, fulfillments, notes, profile, requests

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    state = {"last_sweep": None}
    app.state.sweeper = state
    task = asyncio.create_task(request_sweeper(state))
    try:
        yield
    finally:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


app = FastAPI(title="GyanShare API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(GyanError)
async def gyan_error_handler(request: Request, exc: GyanError):
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    failure = BackendFailure()
    return JSONResponse(status_code=failure.status_code, content=failure.to_dict())


app.include_router(auth.router)
app.include_router(profile.router)
app.include_router(requests.router)
app.include_router(fulfillments.router)
app.include_router(notes.router)


@app.get("/")
def root():
    return {"message": "GyanShare API", "docs": "/docs"}


@app.get("/api/health")
def health():
    return {"status": "ok", "last_sweep": app.state.sweeper.get("last_sweep") if hasattr(app.state, "sweeper") else None}
