"""RummyQ host entry point"""

import uvicorn

from rummyq.app import create_app
from rummyq.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        create_app(),
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
