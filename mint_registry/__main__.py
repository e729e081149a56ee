"""Run the API with ``python -m mint_registry``."""

from __future__ import annotations

import uvicorn

from .utils.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run("mint_registry.api.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
