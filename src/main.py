"""
Main FastAPI Application Entry Point
ExpenseFlow expense reimbursement system
"""

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from contextlib import asynccontextmanager
import time

from src.config.settings import settings
from src.config.database import SessionLocal, engine
from src.database.setup_database import create_tables
from src.middleware.logging_middleware import LoggingMiddleware
from src.services.currency_service import CurrencyService
from src.services.email_service import EmailService
from src.utils.exceptions import ExpenseFlowError
from src.utils.logger import setup_logger

# Import routes
from src.routes import auth, admin, expense, approval, notification, currency

# Setup logger
logger = setup_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan events for application startup and shutdown
    """
    logger.info("Starting ExpenseFlow...")

    try:
        create_tables(engine)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Failed to create database tables: {str(e)}")

    # Shared collaborators live on app.state, not in module globals
    app.state.session_factory = SessionLocal
    app.state.email_service = EmailService()
    app.state.currency_service = CurrencyService()

    logger.info("Application started successfully")

    yield

    logger.info("Shutting down ExpenseFlow...")
    await app.state.currency_service.aclose()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Expense reimbursement with multi-step approval workflows",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add logging middleware
app.add_middleware(LoggingMiddleware)


# Exception handlers
@app.exception_handler(ExpenseFlowError)
async def domain_exception_handler(request: Request, exc: ExpenseFlowError):
    """Map domain errors to their HTTP status"""
    logger.warning(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "message": exc.message,
            "error_code": exc.error_code
        }
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors"""
    logger.error(f"Validation error: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "message": "Validation error",
            "errors": jsonable_encoder(exc.errors())
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "message": "Internal server error",
            "detail": str(exc) if settings.DEBUG else "An error occurred"
        }
    )


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "app_name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": time.time()
    }


# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])
app.include_router(expense.router, prefix="/api/expenses", tags=["Expenses"])
app.include_router(approval.router, prefix="/api/approvals", tags=["Approvals"])
app.include_router(notification.router, prefix="/api/notifications", tags=["Notifications"])
app.include_router(currency.router, prefix="/api/currencies", tags=["Currencies"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "src.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
