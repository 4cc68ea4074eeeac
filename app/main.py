import logging
import os
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.config import (
    ADMIN_ENDPOINT_ENABLED,
    CREDENTIAL_FETCH_TIMEOUT_SECONDS,
    CREDENTIAL_MAX_REDIRECTS,
    CREDENTIAL_MAX_SIZE_BYTES,
    IPFS_GATEWAY_URL,
    LEDGER_ENDPOINT,
    LEDGER_TIMEOUT_SECONDS,
    PLATFORMS_FILE,
    SUPPORTED_PLATFORMS,
    TRUSTED_ATTESTER_URIS,
    USERNAME_MATCH_CASE_SENSITIVE,
)
from app.logging_config import configure_logging
from app.profiles.api_models import (
    ERROR_HTTP_STATUS,
    ErrorCode,
    ErrorDetail,
    ErrorResponse,
    ProfileResponse,
    VerifyProfileRequest,
)
from app.profiles.exceptions import ConfigurationError, ProfileError
from app.profiles.ledger import HttpLedgerClient
from app.profiles.schema_registry import load_schema_registry
from app.profiles.verify import ProfileVerifier

configure_logging()
log = logging.getLogger("profiles")

REQUEST_ID_HEADER = "X-Request-ID"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    log.info("Starting Profile Verifier service...")

    if not TRUSTED_ATTESTER_URIS:
        raise ConfigurationError("No trusted attester URIs found (TRUSTED_ATTESTER_URIS)")

    registry = load_schema_registry(SUPPORTED_PLATFORMS, PLATFORMS_FILE)

    ledger = HttpLedgerClient(timeout=LEDGER_TIMEOUT_SECONDS)
    await ledger.connect(LEDGER_ENDPOINT)

    app.state.ledger = ledger
    app.state.registry = registry
    app.state.verifier = ProfileVerifier(
        ledger=ledger,
        registry=registry,
        trusted_attesters=TRUSTED_ATTESTER_URIS,
    )
    log.info(
        f"Profile Verifier service started platforms={len(registry)} "
        f"trusted_attesters={len(TRUSTED_ATTESTER_URIS)}"
    )

    yield

    log.info("Shutting down Profile Verifier service...")
    await ledger.disconnect()
    log.info("Profile Verifier service stopped")


app = FastAPI(
    title="Profile Verifier",
    version="0.1.0",
    description="Verifies social links attested to a web3name",
    lifespan=lifespan,
)


def log_context(request: Request, **extra) -> dict:
    """Request-scoped fields for structured log lines."""
    context = {
        "request_id": getattr(request.state, "request_id", "-"),
        "route": request.url.path,
        "remote_addr": request.client.host if request.client else "-",
    }
    context.update(extra)
    return context


@app.middleware("http")
async def req_log(request: Request, call_next):
    start = time.time()
    request.state.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    resp = await call_next(request)
    duration_ms = int((time.time() - start) * 1000)
    log.info(f"request_complete status={resp.status_code} duration_ms={duration_ms}",
             extra=log_context(request))
    resp.headers[REQUEST_ID_HEADER] = request.state.request_id
    return resp


@app.exception_handler(ProfileError)
async def profile_error_handler(request: Request, exc: ProfileError):
    status_code = ERROR_HTTP_STATUS.get(exc.code, 500)
    if status_code >= 500:
        log.error(f"profile_request_failed code={exc.code}: {exc.message}",
                  extra=log_context(request, error_code=exc.code))
    else:
        log.warning(f"profile_request_failed code={exc.code}: {exc.message}",
                    extra=log_context(request, error_code=exc.code))
    body = ErrorResponse(error=ErrorDetail(code=exc.code, message=exc.message))
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    log.exception(f"profile_request_crashed: {exc}",
                  extra=log_context(request, error_code=ErrorCode.INTERNAL_ERROR))
    body = ErrorResponse(
        error=ErrorDetail(code=ErrorCode.INTERNAL_ERROR, message="Internal server error")
    )
    return JSONResponse(status_code=500, content=body.model_dump())


@app.get("/healthz")
def healthz():
    return {"ok": True}


@app.get("/profiles/healthCheck", response_model=bool)
def health_check():
    return True


@app.post(
    "/profiles/verifyProfile",
    response_model=ProfileResponse,
    responses={code: {"model": ErrorResponse} for code in (400, 404, 409, 410, 422, 500, 502)},
)
async def verify_profile(req: VerifyProfileRequest, request: Request):
    """Verify a claimed platform username for a web3name.

    Returns every link of the web3name's published credential collection
    that passes verification. Fails as a whole when the claimed link itself
    cannot be verified.
    """
    verifier: ProfileVerifier = request.app.state.verifier
    profile = await verifier.verify_profile(req.web3_name, req.username, req.platform)
    log.info(
        f"verify_profile_succeeded links={len(profile.links)}",
        extra=log_context(request, web3_name=req.web3_name, platform=req.platform),
    )
    return ProfileResponse(links=dict(profile.links))


@app.get("/version")
def version():
    # GIT_SHA is injected at deploy time
    return {"git_sha": os.getenv("GIT_SHA", "unknown")}


@app.get("/admin")
def admin(request: Request):
    """Return configurable items for operator visibility.

    Gated by ADMIN_ENDPOINT_ENABLED (default: True for dev, False for prod).
    """
    if not ADMIN_ENDPOINT_ENABLED:
        return JSONResponse(
            status_code=404,
            content={"detail": "Admin endpoint disabled"}
        )

    registry = request.app.state.registry
    ledger = request.app.state.ledger
    return {
        "ledger": {
            "endpoint": ledger.address,
            "connected": ledger.connected,
            "timeout_seconds": LEDGER_TIMEOUT_SECONDS,
        },
        "trust": {
            "trusted_attester_count": len(request.app.state.verifier.trusted_attesters),
            "supported_platforms": [
                {
                    "platform": d.platform,
                    "schema_id": d.schema_id,
                    "contents_key": d.contents_key,
                    "link_template": d.link_template,
                }
                for d in registry.all()
            ],
        },
        "policy": {
            "credential_fetch_timeout_seconds": CREDENTIAL_FETCH_TIMEOUT_SECONDS,
            "credential_max_size_bytes": CREDENTIAL_MAX_SIZE_BYTES,
            "credential_max_redirects": CREDENTIAL_MAX_REDIRECTS,
            "ipfs_gateway_url": IPFS_GATEWAY_URL,
            "username_match_case_sensitive": USERNAME_MATCH_CASE_SENSITIVE,
        },
        "environment": {
            "log_level": logging.getLevelName(logging.getLogger().getEffectiveLevel()),
        },
    }
