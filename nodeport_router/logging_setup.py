"""Logging configuration for the NodePort router controller."""

import logging
import sys

import colorlog

log = logging.getLogger("nodeport-router")

LOG_FORMAT = "%(log_color)s%(asctime)s %(levelname)-8s%(reset)s %(name)s: %(message)s"
LOG_COLORS = {
    "DEBUG":    "cyan",
    "INFO":     "green",
    "WARNING":  "yellow",
    "ERROR":    "red",
    "CRITICAL": "bold_red",
}


def setup_logging(debug: bool = False) -> None:
    """
    Attach a single coloured stderr handler to the controller logger.

    Calling it again replaces the handler, so the level can be changed
    after startup without duplicating output.

    Args:
        debug: Enable debug-level logging; otherwise the chatty
               kubernetes client logger is limited to warnings.
    """
    log.setLevel(logging.DEBUG if debug else logging.INFO)
    log.handlers.clear()
    log.propagate = False

    handler = colorlog.StreamHandler(sys.stderr)
    handler.setFormatter(colorlog.ColoredFormatter(
        LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S", log_colors=LOG_COLORS,
    ))
    log.addHandler(handler)

    if not debug:
        logging.getLogger("kubernetes").setLevel(logging.WARNING)
