"""
Entrypoint to run the POS service with uvicorn.

Example:
  python -m coffee_pos
"""
import uvicorn

from coffee_pos.config import load_settings


def main() -> None:
    settings = load_settings()
    uvicorn.run(
        "coffee_pos.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
