import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError

from api.config import settings
from api.database import Database
from api.routers import auth, system, transactions

logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = Database(
        settings.connection_string,
        schema=settings.db_schema,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_recycle=settings.db_pool_recycle,
    )
    try:
        await db.connect()
    except (SQLAlchemyError, OSError) as e:
        logger.critical(f"Could not connect to the database: {e}")
        raise
    app.state.db = db

    yield
    await db.close()


def register_routes(app: FastAPI):
    """
    Wire URL prefixes to handlers.

    /api/auth/{signup,login,refresh}  public
    /api, /api/health                 public
    /api/transactions[/{id}]          role "user"
    """
    app.include_router(auth.router)
    app.include_router(system.router)
    app.include_router(transactions.router)


app = FastAPI(
    title="FinMa API",
    description="Personal finance API: accounts, authentication and transactions",
    version="1.0.0",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o for o in settings.cors_origins.split(",") if o],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.limiter = auth.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

register_routes(app)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
