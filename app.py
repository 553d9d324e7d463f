from __future__ import annotations

import sys

from dotenv import load_dotenv

load_dotenv()

from visitlog.config.secrets import SecretResolutionError
from visitlog.config.settings import get_settings
from visitlog.server.core import create_app


def main() -> int:
    import uvicorn

    settings = get_settings()
    server_options = dict(
        host=settings.api.host,
        port=settings.api.port,
        log_level=settings.api.log_level.lower(),
        timeout_graceful_shutdown=settings.api.graceful_shutdown_timeout,
    )

    # Reload and multi-worker modes need an import string; each worker builds its own app.
    if settings.api.reload or settings.api.workers > 1:
        uvicorn.run(
            "visitlog.server.core:create_app",
            factory=True,
            reload=settings.api.reload,
            workers=settings.api.workers,
            **server_options,
        )
        return 0

    try:
        app = create_app(settings)
    except SecretResolutionError:
        return 1

    # Returns after SIGTERM/SIGINT once in-flight requests have drained.
    uvicorn.run(app, **server_options)
    return app.state.exit_code


if __name__ == "__main__":
    sys.exit(main())
