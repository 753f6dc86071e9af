import time
from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, DBAPIError
from openstudents.extensions import db


def connect_db_with_retry(attempts=None, base_delay=None):
    """Ping the database, retrying with a doubling delay.

    Returns True once a ping succeeds and False when every attempt failed, so
    callers can answer 503 instead of crashing.
    """
    attempts = max(1, attempts or current_app.config.get("DB_CONNECT_ATTEMPTS", 3))
    if base_delay is None:
        base_delay = current_app.config.get("DB_CONNECT_BASE_DELAY", 0.3)

    for attempt in range(attempts):
        try:
            db.session.execute(text("SELECT 1"))
            return True
        except (OperationalError, DBAPIError) as e:
            db.session.rollback()
            current_app.logger.warning(f"Database ping failed (attempt {attempt + 1}/{attempts}): {e}")
            if attempt < attempts - 1:
                time.sleep(base_delay * (2 ** attempt))

    current_app.logger.error("Database unavailable after retries")
    return False
