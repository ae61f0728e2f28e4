"""
Base class for parameterized pytreesim models.

Provides common functionality for loading species-specific coefficients
from configuration files with caching and fallback support.

Usage:
    class MortalityModel(ParameterizedModel):
        COEFFICIENT_FILE = 'mortality_coefficients.json'
        COEFFICIENT_KEY = 'species_coefficients'
        FALLBACK_PARAMETERS = {
            'OAK': {'fire_resistance': 0.6, 'windthrow_resistance': 0.65}
        }
"""
from abc import ABC
from typing import Any, Dict, Optional

from .config_loader import load_coefficient_file
from .logging_config import get_logger


class ParameterizedModel(ABC):
    """Base class for models with species-specific coefficients.

    Subclasses must define:
        COEFFICIENT_FILE: str - Name of the file (inside cfg/) holding coefficients
        COEFFICIENT_KEY: str - Key in that file containing per-species coefficients
        FALLBACK_PARAMETERS: dict - Fallback coefficients by species code

    Optional class attributes:
        DEFAULT_SPECIES: str - Species used when the requested one is missing

    Attributes:
        species_code: The species code for this model instance
        coefficients: The loaded coefficients for the species
        raw_data: The complete raw data loaded from the coefficient file
    """

    COEFFICIENT_FILE: Optional[str] = None
    COEFFICIENT_KEY: str = 'species_coefficients'
    FALLBACK_PARAMETERS: Dict[str, Dict[str, Any]] = {}
    DEFAULT_SPECIES: str = "OAK"

    def __init__(self, species_code: str = None):
        """Initialize the model with species-specific parameters.

        Args:
            species_code: Species code (e.g., "OAK", "PINE").
                Defaults to DEFAULT_SPECIES if not provided.
        """
        if species_code is None:
            species_code = self.DEFAULT_SPECIES
        self.species_code = str(species_code)
        self.coefficients: Dict[str, Any] = {}
        self.raw_data: Dict[str, Any] = {}
        self.logger = get_logger(type(self).__module__)
        self._load_parameters()

    def _get_coefficient_data(self) -> Dict[str, Any]:
        """Load coefficient data through the cached ConfigLoader.

        Returns:
            Dictionary containing the full coefficient file data,
            or empty dict if the file is not found.
        """
        if self.COEFFICIENT_FILE is None:
            raise NotImplementedError(
                f"{self.__class__.__name__} must define COEFFICIENT_FILE class attribute"
            )

        try:
            return load_coefficient_file(self.COEFFICIENT_FILE)
        except FileNotFoundError:
            self.logger.warning(
                f"{self.COEFFICIENT_FILE} not found; using built-in coefficients"
            )
            return {}

    def _load_parameters(self) -> None:
        """Load species-specific parameters from configuration.

        1. Loads the coefficient file data (cached)
        2. Extracts species-specific coefficients
        3. Falls back to DEFAULT_SPECIES coefficients if species not found
        4. Falls back to FALLBACK_PARAMETERS if the file is missing
        """
        self.raw_data = self._get_coefficient_data()
        species_coeffs = self.raw_data.get(self.COEFFICIENT_KEY, {})

        if self.species_code in species_coeffs:
            self.coefficients = dict(species_coeffs[self.species_code])
        elif self.DEFAULT_SPECIES in species_coeffs:
            self.coefficients = dict(species_coeffs[self.DEFAULT_SPECIES])
        else:
            self._load_fallback_parameters()

    def _load_fallback_parameters(self) -> None:
        """Load fallback parameters when coefficient data is not available."""
        if self.species_code in self.FALLBACK_PARAMETERS:
            self.coefficients = self.FALLBACK_PARAMETERS[self.species_code].copy()
        elif self.DEFAULT_SPECIES in self.FALLBACK_PARAMETERS:
            self.coefficients = self.FALLBACK_PARAMETERS[self.DEFAULT_SPECIES].copy()
        else:
            self.coefficients = {}

    def get_species_coefficients(self) -> Dict[str, Any]:
        """Get a copy of the coefficients for this species."""
        return self.coefficients.copy()

    def get_raw_data(self) -> Dict[str, Any]:
        """Get a copy of the full raw data loaded from the coefficient file."""
        return self.raw_data.copy()

    def get_coefficient(self, key: str, default: Any = None) -> Any:
        """Get a specific coefficient value.

        Args:
            key: Coefficient key to retrieve
            default: Default value if key not found

        Returns:
            Coefficient value or default
        """
        return self.coefficients.get(key, default)

    def __repr__(self) -> str:
        """Return string representation of the model."""
        return f"{self.__class__.__name__}(species_code='{self.species_code}')"
