# app.py
# Tennis club rankings service: FastAPI app over the sqlite tournament store

import uvicorn

from tennis_rank import config
from tennis_rank.api import create_app
from tennis_rank.logging_config import setup_logging, get_logger

setup_logging()
log = get_logger(__name__)

app = create_app(db_path=config.DATABASE_PATH)

# --- Entrypoint ---
if __name__ == "__main__":
    log.info("Starting rankings service on %s:%s (DB=%s)", config.HOST, config.PORT, config.DATABASE_PATH)
    uvicorn.run(app, host=config.HOST, port=config.PORT, log_config=None)
