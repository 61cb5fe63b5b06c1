"""Run the API server: python -m src.api"""

import uvicorn

from src.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "src.api.app:create_app",
        factory=True,
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.app.log_level.lower(),
        reload=settings.app.debug_mode,
    )


if __name__ == "__main__":
    main()
