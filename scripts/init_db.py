"""Create the chorepoints tables on CHOREPOINTS_DATABASE_URL without starting the API."""
import logging

from chorepoints.core.config import configure_logging
from chorepoints.db.base import init_db
from chorepoints.db.session import engine

logger = logging.getLogger("chorepoints.init_db")

if __name__ == "__main__":
    configure_logging()
    tables = init_db(engine)
    logger.info(f"Schema ready on {engine.url.render_as_string(hide_password=True)}: {', '.join(tables)}")
