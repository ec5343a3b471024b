import logging
import logging.config
from pathlib import Path
from typing import Optional, Union

import yaml

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(config_path: Optional[Union[str, Path]] = None, level: int = logging.INFO) -> None:
    """
    Set up logging configuration from a YAML file.

    Falls back to ``logging.basicConfig`` when no path is given, the file does
    not exist, or it cannot be loaded.

    Args:
        config_path: Path to a ``logging.config.dictConfig`` YAML file
        level: Level used by the basicConfig fallback
    """
    if config_path is None:
        logging.basicConfig(level=level, format=DEFAULT_LOG_FORMAT)
        return

    config_path = Path(config_path)
    if config_path.exists():
        try:
            with open(config_path, "rt", encoding="utf-8") as f:
                log_config = yaml.safe_load(f.read())
            logging.config.dictConfig(log_config)
            logging.info(f"Logging configured successfully from {config_path}")
        except (OSError, yaml.YAMLError, ValueError, TypeError, AttributeError) as e:
            logging.basicConfig(level=level, format=DEFAULT_LOG_FORMAT)
            logging.error(f"Error loading logging configuration from {config_path}: {e}. Using basicConfig.")
    else:
        logging.basicConfig(level=level, format=DEFAULT_LOG_FORMAT)
        logging.warning(f"Logging configuration file not found at {config_path}. Using basicConfig.")
