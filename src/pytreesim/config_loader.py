"""
Configuration loader for pytreesim.
Provides unified access to YAML, TOML, and JSON configuration files.

Supports:
- YAML (.yaml, .yml) - species traits, simulation defaults, variables documents
- TOML (.toml) - structured configuration with types
- JSON (.json) - coefficient files (mortality hazard weights)

Features:
- Package-internal cfg/ directory with per-species files
- Coefficient file caching
- Unified API for all configuration types
"""
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .exceptions import (
    ConfigurationError,
    FileNotFoundError as ConfigFileNotFoundError,
    InvalidDataError,
    SpeciesNotFoundError,
)
from .utils import normalize_code

# Handle TOML imports for different Python versions
if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None

try:
    import tomli_w
except ImportError:
    tomli_w = None

SPECIES_INDEX_FILE = 'species_config.yaml'
SIMULATION_DEFAULTS_FILE = 'simulation_defaults.yaml'


class ConfigLoader:
    """Loads and manages pytreesim configuration from the cfg/ directory.

    Provides unified access to:
    - Species traits (YAML, one file per species)
    - Simulation defaults (YAML)
    - Coefficient files (JSON) with caching

    Attributes:
        cfg_dir: Path to the configuration directory
        species_config: Loaded species index
    """

    def __init__(self, cfg_dir: Path = None):
        """Initialize the configuration loader.

        Args:
            cfg_dir: Path to the configuration directory. Defaults to the
                cfg/ directory shipped inside the package.
        """
        if cfg_dir is None:
            cfg_dir = Path(__file__).parent / 'cfg'
        self.cfg_dir = Path(cfg_dir)

        # Cache for coefficient files (loaded once, reused)
        self._coefficient_cache: Dict[str, Dict[str, Any]] = {}

        self.species_config = self._load_config_file(self.cfg_dir / SPECIES_INDEX_FILE)
        if 'species' not in self.species_config:
            raise ConfigurationError(
                f"{SPECIES_INDEX_FILE} must contain a 'species' mapping"
            )

    def _load_config_file(self, file_path: Path) -> Dict[str, Any]:
        """Load configuration from a YAML, TOML or JSON file.

        Args:
            file_path: Path to the configuration file

        Returns:
            Dictionary containing configuration data

        Raises:
            FileNotFoundError: If file doesn't exist
            ConfigurationError: If file format is not supported or parsing fails
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise ConfigFileNotFoundError(str(file_path), "configuration file")

        suffix = file_path.suffix.lower()

        try:
            if suffix in ['.yaml', '.yml']:
                with open(file_path, 'r', encoding='utf-8') as f:
                    data = yaml.safe_load(f)
            elif suffix == '.toml':
                if tomllib is None:
                    raise ConfigurationError(
                        "TOML support requires 'tomli' package for Python < 3.11. "
                        "Install with: pip install tomli"
                    )
                with open(file_path, 'rb') as f:
                    data = tomllib.load(f)
            elif suffix == '.json':
                with open(file_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            else:
                raise ConfigurationError(f"Unsupported configuration file format: {suffix}. "
                                         f"Supported formats: .yaml, .yml, .toml, .json")
        except yaml.YAMLError as e:
            raise InvalidDataError("YAML configuration", f"parsing error: {str(e)}") from e
        except json.JSONDecodeError as e:
            raise InvalidDataError("JSON configuration", f"parsing error: {str(e)}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration from {file_path}: {str(e)}") from e

        if data is None:
            raise InvalidDataError(f"configuration file {file_path.name}",
                                   "file is empty or contains only comments")
        if not isinstance(data, dict):
            raise InvalidDataError(f"configuration file {file_path.name}",
                                   "top level must be a mapping")
        return data

    def _save_config_file(self, data: Dict[str, Any], file_path: Path) -> None:
        """Save configuration to a YAML, TOML or JSON file.

        Args:
            data: Configuration data to save
            file_path: Path where to save the file

        Raises:
            ConfigurationError: If file format is not supported
        """
        file_path = Path(file_path)
        suffix = file_path.suffix.lower()

        # Create parent directory if it doesn't exist
        file_path.parent.mkdir(parents=True, exist_ok=True)

        if suffix in ['.yaml', '.yml']:
            with open(file_path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        elif suffix == '.json':
            with open(file_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
        elif suffix == '.toml':
            if tomli_w is None:
                raise ConfigurationError(
                    "TOML writing requires 'tomli-w' package. "
                    "Install with: pip install tomli-w"
                )
            with open(file_path, 'wb') as f:
                tomli_w.dump(data, f)
        else:
            raise ConfigurationError(f"Unsupported configuration file format: {suffix}")

    def available_species(self) -> list:
        """Return the species codes listed in the species index."""
        return list(self.species_config['species'].keys())

    def load_species_config(self, species_code: str) -> Dict[str, Any]:
        """Load trait configuration for a specific species.

        Args:
            species_code: Species code (e.g., 'OAK', 'PINE')

        Returns:
            Dictionary containing species traits

        Raises:
            SpeciesNotFoundError: If species code is not found
            ConfigurationError: If species file cannot be loaded
        """
        normalized_code = normalize_code(species_code)
        if normalized_code not in self.species_config['species']:
            raise SpeciesNotFoundError(species_code)

        species_info = self.species_config['species'][normalized_code]
        species_file = self.cfg_dir / species_info['file']
        try:
            config = self._load_config_file(species_file)
        except ConfigFileNotFoundError as e:
            raise ConfigurationError(
                f"Failed to load configuration for species '{species_code}': {str(e)}"
            ) from e
        config.setdefault('code', normalized_code)
        return config

    def load_simulation_defaults(self) -> Dict[str, Any]:
        """Load the simulation defaults document (scheduler, calendar, model constants)."""
        return self._load_config_file(self.cfg_dir / SIMULATION_DEFAULTS_FILE)

    def load_coefficient_file(self, filename: str) -> Dict[str, Any]:
        """Load a coefficient file with caching.

        Args:
            filename: Name of the coefficient file inside cfg/

        Returns:
            Dictionary containing coefficient data

        Raises:
            FileNotFoundError: If the file doesn't exist
            ConfigurationError: If the file cannot be parsed
        """
        if filename not in self._coefficient_cache:
            self._coefficient_cache[filename] = self._load_config_file(self.cfg_dir / filename)
        return self._coefficient_cache[filename]

    def load_document(self, file_path: Union[str, Path]) -> Dict[str, Any]:
        """Load a user-supplied document (variables file, snapshot) from any path."""
        return self._load_config_file(Path(file_path))

    def clear_coefficient_cache(self) -> None:
        """Clear the coefficient file cache.

        Useful for testing or when configuration files may have changed.
        """
        self._coefficient_cache.clear()

    def save_config(self, config_data: Dict[str, Any], file_path: Union[str, Path]) -> None:
        """Save configuration data to file.

        Args:
            config_data: Configuration data to save
            file_path: Path where to save the configuration
        """
        self._save_config_file(config_data, Path(file_path))


# Global configuration loader instance
_config_loader: Optional[ConfigLoader] = None


def get_config_loader() -> ConfigLoader:
    """Get the shared configuration loader for the packaged cfg/ directory."""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader


def load_species_config(species_code: str) -> Dict[str, Any]:
    """Convenience function to load species traits."""
    return get_config_loader().load_species_config(species_code)


def load_coefficient_file(filename: str) -> Dict[str, Any]:
    """Convenience function to load a coefficient file with caching."""
    return get_config_loader().load_coefficient_file(filename)


def load_variables_file(file_path: Union[str, Path]) -> Dict[str, Any]:
    """Convenience function to read a variables document (YAML, TOML or JSON)."""
    return get_config_loader().load_document(file_path)
