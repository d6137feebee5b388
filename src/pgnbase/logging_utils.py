from __future__ import annotations

import logging
import sys


def get_logger(name: str = "pgnbase", level: int = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(name)
    root = logging.getLogger("pgnbase")
    if not root.handlers:
        root.setLevel(level)
        handler = logging.StreamHandler(sys.stderr)
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        handler.setFormatter(formatter)
        root.addHandler(handler)
    return logger


def set_level(level: int) -> None:
    logging.getLogger("pgnbase").setLevel(level)
