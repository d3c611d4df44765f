from __future__ import annotations

import uvicorn

from .env import get_settings


def main() -> None:
    """Main entry point for the verification service."""

    settings = get_settings()

    print(f"Starting {settings.app_name} v{settings.app_version}")
    print(f"Database: {settings.database_url}")
    print(
        f"Watching {settings.receiving_address} for incoming SOL payments "
        f"every {settings.poll_interval_seconds:g}s"
    )
    print(f"API will be available at: http://{settings.api_host}:{settings.api_port}")
    print(f"API Documentation: http://{settings.api_host}:{settings.api_port}/docs")

    # Single worker: pending intents and subscribers live in process memory.
    uvicorn.run(
        "walletproof.api.app:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_debug,
        workers=1,
        loop="auto",
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    main()
