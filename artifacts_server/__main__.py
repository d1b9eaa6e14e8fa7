# artifacts_server/__main__.py
import os

import uvicorn

from artifacts_server.api.routes import create_app
from artifacts_server.config import Settings
from artifacts_server.logging_utils import get_logger

logger = get_logger(__name__)


def main() -> None:
    settings = Settings.from_env()
    app = create_app(settings)
    host = os.getenv("HOST", "0.0.0.0")
    logger.info("Server running on %s:%d", host, settings.port)
    uvicorn.run(app, host=host, port=settings.port)


if __name__ == "__main__":
    main()
