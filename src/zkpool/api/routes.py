"""REST API endpoints for the shielded pool."""

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from zkpool import __version__
from zkpool.core.pool import ShieldedPool
from zkpool.models.schemas import (
    EventListResponse,
    HealthResponse,
    NullifierStatusResponse,
    PoolStateResponse,
    ReceiptResponse,
    RegisterRequest,
    RootStatusResponse,
    TransactRequest,
)
from zkpool.utils.encoding import hex_to_int, to_fixed_hex
from zkpool.exceptions import (
    DoubleSpendError,
    InvalidBridgePayloadError,
    InvalidExtDataError,
    InvalidProofError,
    LedgerError,
    LimitExceededError,
    StaleRootError,
    TreeFullError,
    UnauthorizedError,
    ZKPoolException,
)

logger = logging.getLogger(__name__)

# Most specific first
ERROR_STATUS = [
    (InvalidProofError, 400, "invalid_proof"),
    (StaleRootError, 409, "stale_root"),
    (DoubleSpendError, 409, "double_spend"),
    (LimitExceededError, 400, "limit_exceeded"),
    (InvalidExtDataError, 400, "invalid_ext_data"),
    (InvalidBridgePayloadError, 400, "invalid_payload"),
    (UnauthorizedError, 403, "unauthorized"),
    (TreeFullError, 503, "tree_full"),
    (LedgerError, 400, "ledger_error"),
]


def error_status(exc: ZKPoolException):
    """HTTP status and error code for a pool exception."""
    for exc_type, status_code, code in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return status_code, code
    return 500, "internal_error"


def _parse_hex(value: str, what: str) -> int:
    try:
        return hex_to_int(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {what}: {value}") from None


def create_app(pool: ShieldedPool) -> FastAPI:
    """
    Build the REST API around a pool.

    Args:
        pool: Pool served by the API

    Returns:
        FastAPI: Application
    """
    app = FastAPI(
        title="Shielded Pool REST API",
        description="Privacy-preserving shielded value pool",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Convert Pydantic validation errors (422) to 400 Bad Request
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        error_messages = []
        for error in exc.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            error_messages.append(f"{field}: {error['msg']}")
        return JSONResponse(status_code=400, content={"detail": "; ".join(error_messages)})

    @app.exception_handler(ZKPoolException)
    async def pool_exception_handler(request: Request, exc: ZKPoolException):
        status_code, code = error_status(exc)
        if status_code >= 500:
            logger.error(f"{request.url.path} failed: {type(exc).__name__}: {exc}")
        else:
            logger.info(f"{request.url.path} rejected: {type(exc).__name__}: {exc}")
        return JSONResponse(status_code=status_code, content={"detail": str(exc), "code": code})

    # ========================================================================
    # Health & System Endpoints
    # ========================================================================

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health_check():
        """Check service health and status."""
        return HealthResponse(status="operational", version=__version__)

    @app.get("/state", response_model=PoolStateResponse, tags=["System"])
    async def get_state():
        """Get current pool state."""
        return PoolStateResponse(**pool.get_state().to_dict())

    @app.get("/statistics", tags=["System"])
    async def get_statistics():
        return pool.get_statistics()

    # ========================================================================
    # Queries
    # ========================================================================

    @app.get("/roots/{root}", response_model=RootStatusResponse, tags=["Queries"])
    async def get_root(root: str):
        """Check whether a root is inside the history window."""
        value = _parse_hex(root, "root")
        return RootStatusResponse(
            root=to_fixed_hex(value) if value < 2**256 else root,
            known=pool.is_known_root(value),
            current=value == pool.current_root(),
        )

    @app.get("/nullifiers/{nullifier}", response_model=NullifierStatusResponse, tags=["Queries"])
    async def get_nullifier(nullifier: str):
        """Check whether a nullifier is spent."""
        value = _parse_hex(nullifier, "nullifier")
        record = pool.state.nullifiers.get_record(value)
        return NullifierStatusResponse(
            nullifier=nullifier,
            spent=record is not None,
            spent_at=record.spent_at if record is not None else None,
        )

    @app.get("/events", response_model=EventListResponse, tags=["Queries"])
    async def get_events(since: int = 0, limit: int = 1000):
        """Public log, oldest first."""
        if since < 0 or limit < 1:
            raise HTTPException(status_code=400, detail="since must be >= 0 and limit >= 1")
        events = pool.events
        return EventListResponse(
            events=[event.to_dict() for event in events[since:since + limit]],
            total_count=len(events),
        )

    # ========================================================================
    # Transactions
    # ========================================================================

    @app.post("/transact", response_model=ReceiptResponse, tags=["Transactions"])
    async def transact(request: TransactRequest):
        """Submit a shielded transaction."""
        try:
            tx = request.transaction.to_domain()
        except ValueError as e:
            raise HTTPException(status_code=400, detail=f"Invalid transaction: {e}") from None
        receipt = pool.transact(tx, sender=request.sender)
        return ReceiptResponse(**receipt.to_dict())

    @app.post("/register", tags=["Transactions"])
    async def register(request: RegisterRequest):
        """Publish a shielded address. Only the owner may register its own key."""
        try:
            event = pool.register(request.owner, request.public_key, sender=request.sender)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=f"Invalid public key: {e}") from None
        return event.to_dict()

    return app
