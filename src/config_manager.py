"""
Configuration management for OneiroMetrics
Layered JSON settings with dot-notation access
"""

import copy
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, List, Optional

from constants import (
    DEFAULT_METRICS,
    DEFAULT_BATCH_SIZE,
    DEFAULT_MAX_FILES,
    DEFAULT_CONFLICT_STRATEGY,
    SELECTION_MODES,
    LEGACY_SELECTION_MODES,
)
from models import MetricConfig
from logging_setup import LogCategory, get_logger


logger = get_logger(__name__)


@dataclass
class SelectionConfig:
    """Which documents a scrape run reads"""
    mode: str = "notes"
    notes: List[str] = field(default_factory=list)
    folder: str = ""
    excluded_notes: List[str] = field(default_factory=list)
    excluded_folders: List[str] = field(default_factory=list)
    max_files: int = DEFAULT_MAX_FILES

    def __post_init__(self):
        self.mode = LEGACY_SELECTION_MODES.get(self.mode, self.mode)
        if self.mode not in SELECTION_MODES:
            raise ValueError(f"Invalid selection mode: {self.mode}")

    @property
    def is_folder_mode(self) -> bool:
        return self.mode == "folder"


class ConfigManager:
    """
    Manages OneiroMetrics configuration
    JSON file merged over DEFAULT_CONFIG, dot-notation access
    """

    DEFAULT_CONFIG = {
        "metrics": {
            "definitions": DEFAULT_METRICS,
            "derived_metrics": False
        },
        "selection": {
            "mode": "notes",  # "notes" or "folder"
            "notes": [],
            "folder": "",
            "excluded_notes": [],
            "excluded_folders": [],
            "max_files": DEFAULT_MAX_FILES  # 0 = unlimited
        },
        "scrape": {
            "batch_size": DEFAULT_BATCH_SIZE,
            "root": "."
        },
        "frontmatter": {
            "enabled": True,
            "conflict_resolution": DEFAULT_CONFLICT_STRATEGY,
            "auto_detect_type": True,
            "warn_on_conflicts": True
        },
        "logging": {
            "level": "WARNING",
            "log_file": None,
            "json_output": False,
            "disabled_categories": []
        }
    }

    def __init__(self, config_path: Optional[str] = None, create: bool = True):
        """Initialize configuration manager"""
        if config_path:
            self.config_path = Path(config_path)
        else:
            # Try to find config in standard locations
            self.config_path = self._find_config_file()

        self.create = create
        self.config = self.load()

    def _find_config_file(self) -> Path:
        """Find configuration file in standard locations"""
        # Check in order:
        # 1. .oneirometrics/config.json in current directory
        # 2. oneirometrics.json in current directory
        # 3. ~/.oneirometrics/config.json (user home)

        candidates = [
            Path.cwd() / ".oneirometrics" / "config.json",
            Path.cwd() / "oneirometrics.json",
            Path.home() / ".oneirometrics" / "config.json"
        ]

        for path in candidates:
            if path.exists():
                return path

        return Path.cwd() / ".oneirometrics" / "config.json"

    def load(self) -> Dict[str, Any]:
        """Load configuration from file or use defaults"""
        if not self.config_path.exists():
            if self.create:
                self.config_path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.config_path, 'w') as f:
                    json.dump(self.DEFAULT_CONFIG, f, indent=2)
            return copy.deepcopy(self.DEFAULT_CONFIG)

        try:
            with open(self.config_path, 'r') as f:
                user_config = json.load(f)

            # Merge with defaults (user config overrides defaults)
            return self._merge_configs(self.DEFAULT_CONFIG, user_config)

        except json.JSONDecodeError:
            logger.warning(f"{LogCategory.CONFIG} Invalid config file {self.config_path}, using defaults")
            return copy.deepcopy(self.DEFAULT_CONFIG)

    def _merge_configs(self, default: Dict, user: Dict) -> Dict:
        """Recursively merge user config with defaults"""
        result = copy.deepcopy(default)

        for key, value in user.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def save(self):
        """Save current configuration to file"""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, 'w') as f:
            json.dump(self.config, f, indent=2)

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation
        Example: config.get('scrape.batch_size')
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any):
        """
        Set configuration value using dot notation
        Example: config.set('frontmatter.conflict_resolution', 'callout')
        """
        keys = key_path.split('.')
        config = self.config

        # Navigate to the parent dictionary
        for key in keys[:-1]:
            if key not in config:
                config[key] = {}
            config = config[key]

        config[keys[-1]] = value
        self.save()

    def get_metric_configs(self) -> List[MetricConfig]:
        """Configured metric vocabulary, in file order"""
        definitions = self.get('metrics.definitions', []) or []
        configs = []
        for definition in definitions:
            if not isinstance(definition, dict) or not definition.get('name'):
                logger.warning(f"{LogCategory.CONFIG} Skipping metric definition without a name: {definition!r}")
                continue
            configs.append(MetricConfig.from_dict(definition))
        return configs

    def get_selection(self) -> SelectionConfig:
        """Document selection for a scrape run"""
        selection = self.get('selection', {}) or {}
        return SelectionConfig(
            mode=selection.get('mode', 'notes'),
            notes=list(selection.get('notes', [])),
            folder=selection.get('folder', ''),
            excluded_notes=list(selection.get('excluded_notes', [])),
            excluded_folders=list(selection.get('excluded_folders', [])),
            max_files=int(selection.get('max_files', DEFAULT_MAX_FILES)),
        )
