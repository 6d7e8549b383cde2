from __future__ import annotations

from typing import Dict

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from storefront.database import engine


def check_database_health() -> Dict[str, str]:
    """Run ``SELECT 1`` against the configured engine."""
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return {"status": "UP", "dialect": engine.dialect.name}
    except SQLAlchemyError as exc:
        return {"status": "DOWN", "dialect": engine.dialect.name, "detail": str(exc)}
