import logging
import sys
from typing import Optional

from .settings import Settings

_LOGGER_INITIALIZED = False


def init_logging(cfg: Settings, level: Optional[str] = None) -> logging.Logger:
    global _LOGGER_INITIALIZED
    logger = logging.getLogger("netplan_dns")
    if _LOGGER_INITIALIZED:
        return logger
    level_name = (level or cfg.log_level).upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    fmt = logging.Formatter("[%(asctime)s] %(levelname)s %(name)s: %(message)s")
    if cfg.log_console:
        ch = logging.StreamHandler(sys.stderr)
        ch.setFormatter(fmt)
        logger.addHandler(ch)
    if cfg.log_file:
        try:
            fh = logging.FileHandler(cfg.log_file, encoding="utf-8")
            fh.setFormatter(fmt)
            logger.addHandler(fh)
        except OSError as e:
            logger.warning("Failed to open log file %s: %s", cfg.log_file, e)
    _LOGGER_INITIALIZED = True
    logger.debug("Logging initialized (level=%s, file=%s, console=%s)",
                 level_name, cfg.log_file, cfg.log_console)
    return logger
