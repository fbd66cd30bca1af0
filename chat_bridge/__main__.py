"""Run the bridge with uvicorn: python -m chat_bridge"""

import uvicorn

from chat_bridge.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "chat_bridge.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
