"""Backend process entrypoint."""

from __future__ import annotations

import logging

import uvicorn

from shared import config


def main() -> None:
    logging.basicConfig(
        level=config.log_level(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    uvicorn.run("backend.api:app", host=config.host(), port=config.port(), log_level=config.log_level().lower())


if __name__ == "__main__":
    main()
