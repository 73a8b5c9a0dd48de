from __future__ import annotations

import uvicorn

from gighub.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "gighub.main:app",
        host="0.0.0.0",
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
