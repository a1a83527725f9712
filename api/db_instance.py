"""Database instance accessor for routers."""
from fastapi import Request

from api.database import Database


def get_db(request: Request) -> Database:
    """Return the Database opened by the application lifespan."""
    return request.app.state.db
