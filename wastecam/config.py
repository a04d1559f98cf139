"""
Configuration and logging setup
JSON config files are merged over the defaults
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_CONFIG: Dict[str, Any] = {
    "camera": {
        "source": "auto",
        "resolution": [640, 480],
        "fps": 30,
        "sample_dir": "data/samples"
    },
    "model": {
        "path": "models/model_unquant.tflite",
        "image_size": 224,
        "slow_inference_seconds": 1.0
    },
    "encoder": {
        "resize": True
    },
    "display": {
        "headless": False,
        "window_name": "Waste Classifier",
        "error_display_seconds": 2.0
    },
    "log_level": "INFO",
    "log_file": "logs/wastecam.log"
}

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def merge_dicts(default: Dict[str, Any], user: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge user values over defaults"""
    result = copy.deepcopy(default)
    for key, value in user.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_dicts(result[key], value)
        else:
            result[key] = value
    return result


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from file or use defaults"""
    logger = logging.getLogger(__name__)

    if config_path and Path(config_path).exists():
        try:
            with open(config_path, 'r') as f:
                user_config = json.load(f)
            if not isinstance(user_config, dict):
                raise ValueError("top level must be an object")
            return merge_dicts(DEFAULT_CONFIG, user_config)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load config {config_path}: {e}")
            logger.warning("Using default configuration")
    elif config_path:
        logger.warning(f"Config file {config_path} not found, using default configuration")

    return copy.deepcopy(DEFAULT_CONFIG)


def setup_logging(level: str = "INFO", log_file: Optional[str] = None):
    """Setup logging configuration"""
    log_level = getattr(logging, str(level).upper(), logging.INFO)

    handlers = [logging.StreamHandler()]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True
    )
