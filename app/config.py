"""
Application configuration settings for the OCR labeling UI and services
"""
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

# Project directories
# Support bundled mode via environment variable override
PROJECT_ROOT = Path(os.environ.get('LABELING_ROOT', Path(__file__).parent.parent))
DATA_DIR = PROJECT_ROOT / "data"
LOG_DIR = Path(os.environ.get('LABELING_LOG_DIR', DATA_DIR / "logs"))

# Labeling backend
API_BASE_URL = os.getenv('LABELING_API_URL', 'http://localhost:8002/api/')
API_TIMEOUT = float(os.getenv('LABELING_API_TIMEOUT', '60'))
API_TOKEN = os.getenv('LABELING_API_TOKEN') or None

# Optional YAML file overriding the defaults below
CONFIG_PATH = os.getenv('LABELING_CONFIG')

# OCR models configured on project load when nothing was saved for the project
DEFAULT_DETECT_MODEL = "PP-OCRv5_mobile_det"
DEFAULT_RECOGNIZE_MODEL = "PP-OCRv5_server_rec"

# UI settings
DEFAULT_IMAGE_WIDTH = 800
REGION_LABEL_LENGTH = 30  # Characters of region text shown in the region list


@dataclass
class LabelingSettings:
    """Resolved settings for one labeling session"""
    api_base_url: str = API_BASE_URL
    api_timeout: float = API_TIMEOUT
    api_token: Optional[str] = API_TOKEN
    detect_model: str = DEFAULT_DETECT_MODEL
    recognize_model: str = DEFAULT_RECOGNIZE_MODEL
    log_dir: Path = LOG_DIR
    log_level: str = "INFO"


def load_config(config_path: Path) -> Dict[str, Any]:
    """
    Load labeling configuration from YAML file.

    Args:
        config_path: Path to the configuration file

    Returns:
        Configuration dictionary
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        config = yaml.safe_load(f)

    return config or {}


def get_settings(config_path: Optional[Path] = None) -> LabelingSettings:
    """
    Build session settings

    Values from the YAML file (config_path, else LABELING_CONFIG) override
    the module defaults; unknown keys are ignored.

    Args:
        config_path: Optional YAML file

    Returns:
        LabelingSettings
    """
    config_path = config_path or CONFIG_PATH
    overrides: Dict[str, Any] = {}
    if config_path:
        overrides = load_config(Path(config_path))

    known = {f.name for f in fields(LabelingSettings)}
    settings = LabelingSettings(**{k: v for k, v in overrides.items() if k in known})
    settings.api_timeout = float(settings.api_timeout)
    settings.log_dir = Path(settings.log_dir)
    return settings
