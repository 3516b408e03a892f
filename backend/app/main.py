import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select
from app.config import get_settings
from app.database import engine, Base, async_session
from app.errors import ServiceError
from app.models import *
from app.models.user import User
from app.services.auth import hash_password, normalize_email
from app.routers import auth, workspaces, projects, invitations, client_intakes

logger = logging.getLogger(__name__)
settings = get_settings()


async def init_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        email = normalize_email(settings.ADMIN_EMAIL)
        result = await session.execute(select(User).where(User.email == email))
        if not result.scalar_one_or_none():
            session.add(User(
                name=settings.ADMIN_NAME,
                email=email,
                password_hash=hash_password(settings.ADMIN_PASSWORD),
                role="ADMIN",
            ))
            await session.commit()
            logger.info(f"Bootstrap admin {email} created")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.warning(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler: unexpected errors are logged with their traceback and
    reported to the client as a generic 500 without internal details.
    """
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": {"error": "Internal server error", "code": "INTERNAL_ERROR"}},
    )


app.include_router(auth.router)
app.include_router(workspaces.router)
app.include_router(projects.router)
app.include_router(invitations.router)
app.include_router(client_intakes.router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "version": settings.APP_VERSION}
