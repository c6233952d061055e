import uvicorn

from constants import HOST, LOG_FILE, LOG_LEVEL, PORT
from logging_config import get_logger, setup_logging

# Setup logging before importing app
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)

from main import sio_app  # noqa: E402

logger = get_logger(__name__)


def main():
    logger.info(f"Starting pair session server on {HOST}:{PORT}")
    uvicorn.run(sio_app, host=HOST, port=PORT)


if __name__ == "__main__":
    main()
