"""Run the service with uvicorn: ``python -m feedline``."""

import uvicorn

from feedline.config import settings


def main() -> None:
    uvicorn.run(
        "feedline.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
