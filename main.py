import logging

import uvicorn

from sales_tracker.app import create_app
from sales_tracker.config import settings


def main():
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Build the API (creates tables on first run)
    app = create_app(settings)

    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
