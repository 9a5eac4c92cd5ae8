"""
Scoring Engine Configuration Management

Loads and validates the analysis configuration files.
"""

import json
import logging
from typing import Dict, Any, Optional
from pathlib import Path
import jsonschema

from core.models.config import AnalysisConfig

logger = logging.getLogger(__name__)

# config name -> (file, schema file)
CONFIG_FILES = {
    'analysis': ('analysis.json', 'analysis.schema.json'),
}


class ConfigLoader:
    """Loads and manages system configurations."""

    def __init__(self, config_dir: Optional[str] = None):
        """
        Initialize configuration loader.

        Args:
            config_dir: Directory containing configuration files
                (defaults to this package's directory)
        """
        self.config_dir = Path(config_dir) if config_dir else Path(__file__).resolve().parent
        self.configs = {}
        self._load_all_configs()

    def _load_all_configs(self) -> None:
        """Load all configuration files."""
        for config_name in CONFIG_FILES:
            self.configs[config_name] = self._load(config_name)

    def _load(self, config_name: str) -> Dict[str, Any]:
        filename, schema_name = CONFIG_FILES[config_name]
        config_path = self.config_dir / filename
        if not config_path.exists():
            # Built-in defaults apply
            logger.info("config_file_missing", extra={"config": config_name, "path": str(config_path)})
            return {}
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            schema_path = self.config_dir / schema_name
            if schema_path.exists():
                with open(schema_path, 'r', encoding='utf-8') as sf:
                    schema = json.load(sf)
                jsonschema.validate(instance=data, schema=schema)
            return data
        except (OSError, ValueError, jsonschema.ValidationError, jsonschema.SchemaError) as e:
            error = e.message if isinstance(e, jsonschema.ValidationError) else str(e)
            logger.error("config_load_failed", extra={"config": config_name, "path": str(config_path), "error": error})
            return {}

    def get_config(self, config_name: str) -> Dict[str, Any]:
        """
        Get configuration by name.

        Args:
            config_name: Name of configuration

        Returns:
            Configuration dictionary (empty if missing or invalid)
        """
        return self.configs.get(config_name, {})

    def get_all_configs(self) -> Dict[str, Dict[str, Any]]:
        return self.configs.copy()

    def reload_config(self, config_name: str) -> None:
        """
        Reload specific configuration. An invalid file keeps the prior config.

        Args:
            config_name: Name of configuration to reload
        """
        if config_name not in CONFIG_FILES:
            return
        fresh = self._load(config_name)
        if fresh or not (self.config_dir / CONFIG_FILES[config_name][0]).exists():
            self.configs[config_name] = fresh

    def analysis_config(self, direction: Optional[str] = None) -> AnalysisConfig:
        """
        Build the immutable AnalysisConfig from the loaded analysis file.

        Args:
            direction: Optional "long" / "short" override

        Raises:
            ConfigError: If a value passes the schema but is still invalid
        """
        return AnalysisConfig.from_dict(self.get_config('analysis'), direction=direction)


# Global configuration loader instance
config_loader = ConfigLoader()
