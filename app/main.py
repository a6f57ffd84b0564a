# app/main.py
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError as BodyValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.routes import payments
from app.core.config import settings
from app.core.database import create_pool, create_tables
from app.core.exceptions import StorefrontError
from app.services.gateway import SSLCommerzClient
from app.services.order_store import InMemoryOrderStore, PostgresOrderStore
from dotenv import load_dotenv
import logging

load_dotenv()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="CommerceFlow Storefront API",
    description="Checkout and SSLCommerz payment notification API",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.on_event("startup")
async def startup_event():
    app.state.settings = settings
    app.state.gateway = SSLCommerzClient.from_settings(settings)
    if not app.state.gateway.is_configured:
        logger.warning("SSLCommerz credentials are not configured; checkout requests will fail")

    if settings.ORDER_STORE_BACKEND == "memory":
        logger.warning("Using in-memory order store; orders are lost on restart")
        app.state.order_store = InMemoryOrderStore()
    else:
        pool = await create_pool(settings.DATABASE_URL)
        async with pool.acquire() as conn:
            await create_tables(conn)
        app.state.order_store = PostgresOrderStore(pool)

@app.on_event("shutdown")
async def shutdown_event():
    await app.state.gateway.aclose()
    await app.state.order_store.close()

@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    message = (
        f"{type(exc).__name__} on {request.url.path}: {exc.message} "
        f"(status={exc.status_code}, retryable={exc.retryable})"
    )
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(message)
    else:
        logger.warning(message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

@app.exception_handler(BodyValidationError)
async def body_validation_error_handler(request: Request, exc: BodyValidationError):
    details = [
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    ]
    logger.warning(f"Rejected request to {request.url.path}: {details}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "error": "Invalid request", "details": details},
    )

app.include_router(payments.router, prefix=settings.API_PREFIX, tags=["Payments"])

@app.get("/")
async def root():
    return {"message": "CommerceFlow Storefront API"}
