# run.py
import uvicorn
import logging
from app.core.config import settings

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(),
        logging.FileHandler(settings.LOG_FILE)
    ]
)

logger = logging.getLogger(__name__)

def main():
    ssl_options = {}
    if settings.SSL_CERTFILE and settings.SSL_KEYFILE:
        ssl_options = {"ssl_certfile": settings.SSL_CERTFILE, "ssl_keyfile": settings.SSL_KEYFILE}
    else:
        logger.info("No TLS certificate configured, serving plain HTTP")

    # Start the server
    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        **ssl_options
    )

if __name__ == "__main__":
    main()
