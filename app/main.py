from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.api import auth, member, savings, loan, cycle, statement, dashboard
from app.core.config import settings
from app.core.middleware import route_guard
import logging

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

# Get logger for this module
logger = logging.getLogger(__name__)
logger.info("Starting Kulu Sheet API")

app = FastAPI(
    title="Kulu Sheet API",
    description="Savings and loan ledger for a village savings group",
    version="1.0.0",
    debug=settings.DEBUG,
)

# Route guard runs inside CORS so preflight and error responses carry CORS headers
app.middleware("http")(route_guard)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router)
app.include_router(member.router)
app.include_router(savings.router)
app.include_router(loan.router)
app.include_router(cycle.router)
app.include_router(statement.router)
app.include_router(dashboard.router)


@app.get("/")
def root():
    """Root endpoint."""
    return {"message": "Kulu Sheet API", "version": "1.0.0"}


@app.get("/api/health")
def health_check():
    """Health check endpoint: checks API and database connectivity."""
    from app.db.base import SessionLocal
    from sqlalchemy import text
    from sqlalchemy.exc import SQLAlchemyError
    from datetime import datetime, timezone

    db_status = "unreachable"
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        db_status = "connected"
    except SQLAlchemyError as e:
        logger.warning(f"Health check database error: {e}")
    finally:
        db.close()

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "version": "1.0.0",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "api": "ok",
            "database": db_status,
        },
    }
