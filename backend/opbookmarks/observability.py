"""Logging setup"""

import logging


def setup_logging(log_level: str = "INFO") -> None:
    """Configure the log format; records go to stderr"""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
