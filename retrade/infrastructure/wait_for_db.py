"""Simple database readiness check."""
import time
from sqlalchemy import text
from retrade.core.logging_config import get_logger
from retrade.infrastructure.db import engine

logger = get_logger(__name__)

def wait(max_attempts: int = 30, delay: float = 1.0) -> bool:
    for attempt in range(1, max_attempts + 1):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info(f"Database ready after {attempt} attempt(s).")
            return True
        except Exception as e:
            logger.warning(f"DB not ready (attempt {attempt}): {e}")
            time.sleep(delay)
    raise SystemExit("Database not ready after max attempts")

if __name__ == "__main__":
    wait()
