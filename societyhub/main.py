import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from jose import JWTError

from .api import audit_logs, auth, complaints, notices, payments, societies, vehicles
from .auth.jwt import decode_token
from .config import Base, SessionLocal, engine, settings
from .core.errors import register_exception_handlers
from .core.logging import configure_logging
from .core.request_context import RequestIdMiddleware
from .core.security import SecurityHeadersMiddleware, log_security_warnings
from .services.audit import audit_log

configure_logging(settings.log_level, json_output=settings.log_json)
logger = logging.getLogger(__name__)

app = FastAPI(title="SocietyHub")

register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestIdMiddleware)


@app.on_event("startup")
def startup() -> None:
    # In dev we make sure tables exist. Alembic migrations should be used for real schema evolution.
    Base.metadata.create_all(bind=engine)
    log_security_warnings(settings.jwt_secret, settings.database_url)
    logger.info("SocietyHub started")


@app.get("/health", tags=["system"])
def health() -> dict:
    return {"status": "ok"}


app.include_router(societies.router, prefix="/societies", tags=["societies"])
app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(vehicles.router, prefix="/vehicles", tags=["vehicles"])
app.include_router(notices.router, prefix="/notices", tags=["notices"])
app.include_router(complaints.router, prefix="/complaints", tags=["complaints"])
app.include_router(payments.router, prefix="/payments", tags=["payments"])
app.include_router(audit_logs.router, prefix="/audit-logs", tags=["audit"])


@app.middleware("http")
async def audit_trail(request: Request, call_next):
    response = await call_next(request)
    if request.method not in {"POST", "PUT", "PATCH", "DELETE"}:
        return response
    actor_id = None
    society_id = None
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        token = auth_header.split(" ", 1)[1]
        try:
            payload = decode_token(token)
            actor_id = int(payload.get("sub"))
            society_id = int(payload.get("society_id"))
        except (JWTError, TypeError, ValueError):
            actor_id = None
    with SessionLocal() as session:
        audit_log(
            db_session=session,
            actor_user_id=actor_id,
            action=f"{request.method} {request.url.path}",
            target_entity_type="HTTP",
            target_entity_id=request.url.path,
            after={"status": response.status_code},
            society_id=society_id,
        )
    return response
