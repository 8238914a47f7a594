from __future__ import annotations

import logging


LOG_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
NOISY_LOGGER_NAMES = ("discord", "discord.http", "discord.gateway")


def setup_logging(level_name: str = "INFO") -> None:
    log_level = getattr(logging, (level_name or "INFO").upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        force=True,
    )
    for name in NOISY_LOGGER_NAMES:
        logging.getLogger(name).setLevel(max(log_level, logging.INFO))
