"""
Species codes and trait profiles.

SpeciesCode inherits from (str, Enum) so members can be used anywhere a
plain species code string is expected, while SpeciesProfile carries the
traits loaded from cfg/species/*.yaml.

Usage:
    from pytreesim.species import SpeciesCode, get_species_profile

    species = SpeciesCode.from_string("oak")
    profile = get_species_profile(species)
    print(profile.max_height)  # 35.0
"""
from dataclasses import MISSING, dataclass, fields
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from .config_loader import ConfigLoader, get_config_loader
from .exceptions import ConfigurationError, validate_positive, validate_proportion
from .utils import normalize_code


class SpeciesCode(str, Enum):
    """Species available to the simulator."""

    OAK = "OAK"
    """English oak (Quercus robur). Slow, long-lived, deciduous."""

    MAPLE = "MAPLE"
    """Sugar maple (Acer saccharum). Deciduous with early autumn colour."""

    PINE = "PINE"
    """Scots pine (Pinus sylvestris). Evergreen conifer, drought tolerant."""

    BIRCH = "BIRCH"
    """Silver birch (Betula pendula). Fast-growing, short-lived pioneer."""

    @classmethod
    def from_string(cls, code: str) -> "SpeciesCode":
        """
        Convert a string species code to a SpeciesCode enum member.

        Args:
            code: Species code string (case-insensitive)

        Returns:
            The corresponding SpeciesCode enum member

        Raises:
            ValueError: If the code is not a valid species code

        Example:
            >>> SpeciesCode.from_string("pine")
            <SpeciesCode.PINE: 'PINE'>
        """
        if code is None:
            raise ValueError("Species code cannot be None")

        normalized = normalize_code(code)
        for member in cls:
            if member.value == normalized:
                return member

        valid_codes = [m.value for m in cls]
        raise ValueError(
            f"Invalid species code: '{code}'. "
            f"Valid codes: {', '.join(valid_codes)}"
        )

    @classmethod
    def is_valid(cls, code: str) -> bool:
        """Check whether a string is a valid species code."""
        try:
            cls.from_string(code)
            return True
        except ValueError:
            return False


@dataclass(frozen=True)
class SpeciesProfile:
    """Trait profile for one species.

    Attributes:
        code: Species code
        name: Common name
        scientific_name: Binomial name
        evergreen: Whether the species keeps its foliage through winter
        max_height: Height ceiling for the allometric growth curve (m)
        max_age: Typical maximum lifespan (years)
        growth_rate: Relative growth rate multiplier
        wood_density: Dry wood density (kg/m3)
        drought_tolerance: 0-1 descriptive tolerance
        frost_tolerance: 0-1 descriptive tolerance
        autumn_leaf_drop: 0-1 leaf retention through autumn (higher keeps leaves longer)
        spring_leaf_out: 0-1 fraction of foliage present at the start of spring
        dormancy_temperature: Temperature floor below which the tree is dormant (degC)
    """
    code: str
    name: str
    scientific_name: str
    evergreen: bool
    max_height: float
    max_age: float
    growth_rate: float
    wood_density: float = 600.0
    drought_tolerance: float = 0.5
    frost_tolerance: float = 0.5
    autumn_leaf_drop: float = 0.5
    spring_leaf_out: float = 0.3
    dormancy_temperature: float = 5.0

    def __post_init__(self):
        for name in ('max_height', 'max_age', 'growth_rate'):
            validate_positive(getattr(self, name), name)
        for name in ('drought_tolerance', 'frost_tolerance', 'autumn_leaf_drop', 'spring_leaf_out'):
            validate_proportion(getattr(self, name), name)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SpeciesProfile":
        """Build a profile from a species configuration mapping.

        Keys that are not profile fields are ignored; missing required
        keys raise ConfigurationError.
        """
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        missing = [f.name for f in fields(cls)
                   if f.name not in values and f.default is MISSING]
        if missing:
            raise ConfigurationError(
                f"Species configuration for '{data.get('code', '?')}' is missing: {missing}"
            )
        values['code'] = normalize_code(values['code'])
        values['evergreen'] = bool(values['evergreen'])
        for key in known - {'code', 'name', 'scientific_name', 'evergreen'}:
            if key in values:
                values[key] = float(values[key])
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        """Return the profile as a plain dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


_profile_cache: Dict[str, SpeciesProfile] = {}


def get_species_profile(species, loader: Optional[ConfigLoader] = None) -> SpeciesProfile:
    """Load (and cache) the trait profile for a species.

    Args:
        species: SpeciesCode or species code string
        loader: ConfigLoader to read from; the shared loader when omitted

    Returns:
        SpeciesProfile for the species

    Raises:
        SpeciesNotFoundError: If the species is not configured
    """
    code = normalize_code(species.value if isinstance(species, SpeciesCode) else species)
    if loader is not None:
        return SpeciesProfile.from_dict(loader.load_species_config(code))
    if code not in _profile_cache:
        _profile_cache[code] = SpeciesProfile.from_dict(
            get_config_loader().load_species_config(code)
        )
    return _profile_cache[code]
