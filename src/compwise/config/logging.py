"""Shared logging helpers for compwise."""

from __future__ import annotations

import logging

_NOISY_HTTP_LOGGERS = ("httpx", "httpcore", "hishel")


def configure_logging(
    *,
    level: int = logging.INFO,
    force: bool = False,
    quiet_http: bool = True,
) -> None:
    """Initialise the root logger once with a terse CLI format.

    Pass ``force=True`` to reconfigure during tests. ``quiet_http`` keeps the HTTP
    client libraries at WARNING so per-request lines do not drown pipeline output.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    if quiet_http:
        for name in _NOISY_HTTP_LOGGERS:
            logging.getLogger(name).setLevel(max(level, logging.WARNING))
