import sys
import logging

NOISY_LOGGERS = ("aiohttp", "aiohttp.access", "aiohttp.client", "web3")


def setup_logging(debug: bool, to_file: str | None = None) -> None:
    """Root logging for the CLI. Token rows go to stdout, so log records go to stderr."""
    level = logging.DEBUG if debug else logging.INFO
    fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    datefmt = "%H:%M:%S"

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if to_file:
        handlers.append(logging.FileHandler(to_file, encoding="utf-8"))

    logging.basicConfig(level=level, format=fmt, datefmt=datefmt, handlers=handlers, force=True)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
