#!/usr/bin/env python3
"""
pgshift run logging

Console + per-run log file setup, credential masking for anything that
might carry a connection string, and the SQL artifact writer used by the
granular migrate commands.
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

_CREDENTIALS_RE = re.compile(r'://([^:/@\s]+):([^@\s]+)@')


def mask_connection_string(connection_string: str) -> str:
    """Replace the password part of a connection URL with ****"""
    return _CREDENTIALS_RE.sub(r'://\1:****@', connection_string)


def sanitize_error(error: Union[Exception, str]) -> str:
    """Mask credentials in error messages"""
    return mask_connection_string(str(error))


def configure_logging(output_dir: Optional[Union[str, Path]] = None,
                      level: Union[str, int] = 'INFO') -> Optional[Path]:
    """
    Configure the root logger for a command run.

    Installs a console handler and, when ``output_dir`` is given, a run log
    file under ``<output_dir>/logs``. Returns the log file path, if any.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)

    if not any(getattr(h, '_pgshift_console', False) for h in root.handlers):
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(LOG_FORMAT))
        console._pgshift_console = True
        root.addHandler(console)

    if output_dir is None:
        return None

    log_dir = Path(output_dir) / 'logs'
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"migration-{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

    file_handler = logging.FileHandler(log_file)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(file_handler)
    logger.debug(f"Run log: {log_file}")
    return log_file


class ArtifactWriter:
    """Writes named SQL files into the output directory and remembers them"""

    def __init__(self, output_dir: Union[str, Path]):
        self.output_dir = Path(output_dir)
        self._written: List[str] = []

    def write_sql_file(self, filename: str, content: str) -> str:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / filename
        path.write_text(content, encoding='utf-8')
        if str(path) not in self._written:
            self._written.append(str(path))
        logger.info(f"SQL written: {path}")
        return str(path)

    @property
    def sql_files(self) -> List[str]:
        return list(self._written)
