#!/usr/bin/env python3
"""
pgshift Configuration
Connection strings, paths and tuning knobs from PGSHIFT_* environment variables.
"""

import os
import logging
from pathlib import Path
from typing import Dict, Any, Optional, Union
from dataclasses import dataclass

from core.errors import ConfigurationError
from core.run_log import mask_connection_string

logger = logging.getLogger(__name__)

DATA_FORMATS = ('sql', 'json')


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")
    if value < 1:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


@dataclass
class MigratorConfig:
    """pgshift settings; fields are filled from the environment in __post_init__"""

    source_url: Optional[str] = None
    target_url: Optional[str] = None
    schema: str = "public"
    output_dir: Path = None
    batch_size: int = 1000
    data_format: str = "sql"
    log_level: str = "INFO"
    dependency_depth_cap: int = 20
    display_line_cap: int = 20

    def __post_init__(self):
        self.source_url = os.environ.get('PGSHIFT_SOURCE_URL', self.source_url)
        self.target_url = os.environ.get('PGSHIFT_TARGET_URL', self.target_url)
        self.schema = os.environ.get('PGSHIFT_SCHEMA', self.schema)
        self.output_dir = Path(os.environ.get('PGSHIFT_OUTPUT_DIR', self.output_dir or './pgshift-output'))
        self.batch_size = _env_int('PGSHIFT_BATCH_SIZE', self.batch_size)
        self.data_format = os.environ.get('PGSHIFT_DATA_FORMAT', self.data_format).lower()
        self.log_level = os.environ.get('PGSHIFT_LOG_LEVEL', self.log_level).upper()
        self.dependency_depth_cap = _env_int('PGSHIFT_DEPENDENCY_DEPTH_CAP', self.dependency_depth_cap)
        self.display_line_cap = _env_int('PGSHIFT_DISPLAY_LINE_CAP', self.display_line_cap)

        if self.data_format not in DATA_FORMATS:
            raise ConfigurationError(
                f"PGSHIFT_DATA_FORMAT must be one of {', '.join(DATA_FORMATS)}, got {self.data_format!r}"
            )

    def get_safe_dict(self) -> Dict[str, Any]:
        """Configuration as a dict with connection passwords masked"""
        return {
            'source_url': mask_connection_string(self.source_url) if self.source_url else None,
            'target_url': mask_connection_string(self.target_url) if self.target_url else None,
            'schema': self.schema,
            'output_dir': str(self.output_dir),
            'batch_size': self.batch_size,
            'data_format': self.data_format,
            'log_level': self.log_level,
            'dependency_depth_cap': self.dependency_depth_cap,
            'display_line_cap': self.display_line_cap,
        }


def load_env_file(env_file: Union[str, Path]) -> int:
    """
    Load KEY=VALUE lines from a .env file into os.environ.

    Keys already present in the environment are left alone, so exported
    variables take precedence over the file. Returns the number of keys set.
    """
    env_file = Path(env_file)
    if not env_file.exists():
        return 0

    loaded = 0
    try:
        with open(env_file, 'r', encoding='utf-8') as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith('#') or '=' not in line:
                    continue
                key, value = line.split('=', 1)
                key = key.strip()
                if key.startswith('export '):
                    key = key[len('export '):].strip()
                value = value.strip().strip('"').strip("'")
                if key and key not in os.environ:
                    os.environ[key] = value
                    loaded += 1
    except OSError as e:
        logger.warning(f"Could not load .env file {env_file}: {e}")
    return loaded


def get_config(env_file: Optional[Union[str, Path]] = '.env') -> MigratorConfig:
    """Load ``env_file`` (if present) and build a fresh MigratorConfig"""
    if env_file:
        load_env_file(env_file)
    return MigratorConfig()
