"""Run the HTTP adapter: ``python -m session_guard``."""

import uvicorn

from session_guard.config import get_settings


def main() -> None:
    """Serve the app with uvicorn on the configured host and port.

    One worker only: rate state is process-local, so extra workers
    would each enforce their own limits.
    """
    s = get_settings()
    uvicorn.run(
        "session_guard.api.app:app",
        host=s.host,
        port=s.port,
        log_config=None,
        workers=1,
    )


if __name__ == "__main__":
    main()
