"""
Environment Variable Loader for the RTE portal
Reads a single .env file at the project root and exposes typed accessors
used by the settings modules
"""

import os
import logging
from pathlib import Path
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)

SENSITIVE_KEYS = {
    'DJANGO_SECRET_KEY',
    'DB_PASSWORD',
    'SCORM_API_TOKEN',
}


class EnvironmentLoader:
    """
    Loads KEY=value pairs from a .env file into os.environ.

    Variables already present in the process environment are left alone,
    so a deployment (or a test run) can always override the file.
    """

    def __init__(self, env_file_path: Optional[str] = None):
        if env_file_path is None:
            # Project root is where manage.py lives
            project_root = Path(__file__).resolve().parent.parent
            env_file_path = project_root / '.env'

        self.env_file_path = Path(env_file_path)
        self.loaded_variables = {}
        self._load_environment_variables()

    def _load_environment_variables(self):
        if not self.env_file_path.exists():
            logger.debug(f"Environment file not found: {self.env_file_path}, using process environment only")
            return

        with open(self.env_file_path, 'r', encoding='utf-8') as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()

                if not line or line.startswith('#'):
                    continue

                if '=' not in line:
                    logger.warning(f"Invalid line format in {self.env_file_path}:{line_num}: {line}")
                    continue

                key, value = line.split('=', 1)
                key = key.strip()
                value = value.strip()

                if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
                    value = value[1:-1]

                if key in os.environ:
                    continue
                os.environ[key] = value
                self.loaded_variables[key] = value

        logger.info(f"Loaded {len(self.loaded_variables)} environment variables from {self.env_file_path}")
        self._log_loaded_variables()

    def _log_loaded_variables(self):
        """Log loaded variables (without sensitive data)"""
        for key, value in self.loaded_variables.items():
            if key in SENSITIVE_KEYS:
                logger.debug(f"{key}: {'set' if value else 'not set'}")
            else:
                logger.debug(f"{key}: {value}")

    def get(self, key: str, default: Any = None, required: bool = False) -> Any:
        value = os.environ.get(key, default)

        if required and not value:
            raise ValueError(f"Required environment variable {key} is not set")

        return value

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = os.environ.get(key, str(default)).lower()
        return value in ('true', '1', 'yes', 'on')

    def get_int(self, key: str, default: int = 0) -> int:
        try:
            return int(os.environ.get(key, str(default)))
        except ValueError:
            logger.warning(f"Invalid integer value for {key}, using default {default}")
            return default

    def get_float(self, key: str, default: float = 0.0) -> float:
        try:
            return float(os.environ.get(key, str(default)))
        except ValueError:
            logger.warning(f"Invalid float value for {key}, using default {default}")
            return default

    def get_list(self, key: str, separator: str = ',', default: list = None) -> list:
        """Get a list environment variable (comma-separated by default)"""
        if default is None:
            default = []

        value = os.environ.get(key, '')
        if not value:
            return default

        return [item.strip() for item in value.split(separator) if item.strip()]

    def validate_required_variables(self, required_vars: list):
        missing_vars = [var for var in required_vars if not os.environ.get(var)]

        if missing_vars:
            raise ValueError(f"Missing required environment variables: {', '.join(missing_vars)}")

    def get_environment_info(self) -> Dict[str, Any]:
        return {
            'env_file_path': str(self.env_file_path),
            'env_file_exists': self.env_file_path.exists(),
            'loaded_variables_count': len(self.loaded_variables),
            'django_env': os.environ.get('DJANGO_ENV', 'unknown'),
            'django_settings_module': os.environ.get('DJANGO_SETTINGS_MODULE', 'unknown'),
        }


# Global instance
env_loader = EnvironmentLoader()


def get_env(key: str, default: Any = None, required: bool = False) -> Any:
    return env_loader.get(key, default, required)


def get_bool_env(key: str, default: bool = False) -> bool:
    return env_loader.get_bool(key, default)


def get_int_env(key: str, default: int = 0) -> int:
    return env_loader.get_int(key, default)


def get_float_env(key: str, default: float = 0.0) -> float:
    return env_loader.get_float(key, default)


def get_list_env(key: str, separator: str = ',', default: list = None) -> list:
    return env_loader.get_list(key, separator, default)


def validate_environment():
    """Production needs a real secret and database credentials"""
    env_loader.validate_required_variables([
        'DJANGO_SECRET_KEY',
        'DB_NAME',
        'DB_USER',
        'DB_PASSWORD',
        'DB_HOST',
    ])
