"""
Environment configuration loader for the marketplace backend.
Loads settings from the process environment (and .env via python-dotenv).
"""

import os
from functools import lru_cache
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from backend.services.system.logger_service import get_logger

logger = get_logger(__name__)


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Invalid integer in environment, using default", extra={"key": name, "value": value})
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("Invalid number in environment, using default", extra={"key": name, "value": value})
        return default


def load_env_file(env_path: Optional[str] = None) -> bool:
    """
    Load environment variables from a .env file

    Args:
        env_path: Path to .env file (default: .env in project root)

    Returns:
        True when a file was found and loaded
    """
    if env_path is None:
        config_dir = os.path.dirname(os.path.abspath(__file__))
        project_root = os.path.dirname(os.path.dirname(config_dir))
        env_path = os.path.join(project_root, '.env')

    if not os.path.exists(env_path):
        logger.debug("No .env file found", extra={"path": str(env_path)})
        return False

    return load_dotenv(env_path, override=False)


@lru_cache(maxsize=1)
def get_app_config() -> Dict[str, Any]:
    """
    Get application configuration from environment

    Returns:
        Dictionary with application configuration
    """
    load_env_file()

    config = {
        'environment': os.getenv('ENVIRONMENT', 'development').lower(),
        'frontend_origin': os.getenv('FRONTEND_ORIGIN', '*'),
        'storage_bucket': os.getenv('FIREBASE_STORAGE_BUCKET', ''),
        'download_timeout_seconds': _env_float('DOWNLOAD_TIMEOUT_SECONDS', 30.0),
        'nsfw_detection_url': os.getenv('NSFW_DETECTION_URL', ''),
        'nsfw_detection_timeout_seconds': _env_float('NSFW_DETECTION_TIMEOUT_SECONDS', 15.0),
        'nsfw_checks_per_minute': _env_int('NSFW_CHECKS_PER_MINUTE', 30),
        'worker_poll_interval_seconds': _env_float('WORKER_POLL_INTERVAL_SECONDS', 60.0),
        'worker_lease_seconds': _env_int('WORKER_LEASE_SECONDS', 600),
        'suspension_auto_expire': _env_bool('SUSPENSION_AUTO_EXPIRE', False),
    }

    if not config['storage_bucket']:
        logger.warning("FIREBASE_STORAGE_BUCKET is not set; download proxy will reject requests")
    if not config['nsfw_detection_url']:
        logger.warning("NSFW_DETECTION_URL is not set; image pre-checks will fail")

    logger.info(
        "Application configuration loaded",
        extra={
            'environment': config['environment'],
            'nsfw_checks_per_minute': config['nsfw_checks_per_minute'],
            'worker_poll_interval_seconds': config['worker_poll_interval_seconds'],
            'suspension_auto_expire': config['suspension_auto_expire'],
        }
    )
    return config
