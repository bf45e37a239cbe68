import logging
import os
from typing import Optional
from dashtiles.utils import BASE_DIR

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DIR_ENV = "DASHTILES_LOG_DIR"
LOG_LEVEL_ENV = "DASHTILES_LOG_LEVEL"


def log_dir() -> str:
    """Directory holding the log files: $DASHTILES_LOG_DIR, else <package>/logs."""
    path = os.environ.get(LOG_DIR_ENV) or os.path.join(BASE_DIR, "logs")
    os.makedirs(path, exist_ok=True)
    return path


def console_level(default: int = logging.INFO) -> int:
    """Console threshold named by $DASHTILES_LOG_LEVEL; unknown names keep the default."""
    name = os.environ.get(LOG_LEVEL_ENV, "").strip().upper()
    level = logging.getLevelName(name) if name else default
    return level if isinstance(level, int) else default


def setup_logger(
    name: str,
    log_file: str = "app.log",
    level: int = logging.DEBUG,
    console: bool = True,
    handler_level: Optional[int] = None,
) -> logging.Logger:
    """
    Module logger for the dashboard. Everything at ``level`` goes to the log
    file; the console only shows ``console_level()`` and up unless
    ``handler_level`` pins both handlers. Handlers are attached once per name.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT)
    file_handler = logging.FileHandler(os.path.join(log_dir(), log_file), encoding="utf-8")
    file_handler.setLevel(handler_level or level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(handler_level or console_level())
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger
