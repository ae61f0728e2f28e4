"""
Physiology engine: carbon balance, environmental stress and water demand.

All functions here are pure; PhysiologyEngine bundles them for one
species and also books gas exchange onto the tree.
"""
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .environment import EnvironmentSnapshot
from .phenology import PhenologyModel

if TYPE_CHECKING:
    from .tree import TreeState


@dataclass(frozen=True)
class PhysiologyParameters:
    """Carbon balance and gas-exchange constants."""
    base_photosynthesis_rate: float = 1.0
    water_saturation: float = 50.0
    base_respiration_rate: float = 0.02
    q10: float = 2.0
    reference_temperature: float = 20.0
    carbon_weight: float = 0.8
    stress_weight: float = 0.3
    et_temperature_scale: float = 30.0
    et_coefficient: float = 0.5
    co2_absorption_rate: float = 0.018
    o2_production_rate: float = 0.024
    carbon_fraction: float = 0.5


@dataclass(frozen=True)
class StressParameters:
    """Thresholds and weights of the composite environmental stress index."""
    water_low: float = 40.0
    water_low_weight: float = 30.0
    water_high: float = 85.0
    water_high_span: float = 15.0
    water_high_weight: float = 20.0
    severe_temperature_min: float = 5.0
    severe_temperature_max: float = 35.0
    severe_temperature_penalty: float = 20.0
    moderate_temperature_min: float = 12.0
    moderate_temperature_max: float = 28.0
    moderate_temperature_penalty: float = 10.0
    light_min: float = 30.0
    light_weight: float = 15.0
    disease_penalty: float = 25.0
    pests_penalty: float = 20.0
    storm_penalty: float = 15.0
    pollution_penalty: float = 10.0
    max_stress: float = 100.0


@dataclass(frozen=True)
class PhysiologyResult:
    """Per-substep physiological rates (not accumulated on the tree)."""
    photosynthesis: float
    respiration: float
    net_carbon: float
    stress: float
    seasonal_multiplier: float
    dormant: bool
    net_growth_factor: float
    evapotranspiration: float


def photosynthesis(light: float, water: float, soil_quality: float,
                   params: PhysiologyParameters = PhysiologyParameters()) -> float:
    """Gross assimilation from light, water (saturating) and soil nutrients."""
    water_factor = min(1.0, water / params.water_saturation)
    return params.base_photosynthesis_rate * (light / 100.0) * water_factor * (soil_quality / 100.0)


def respiration(temperature: float, total_biomass: float,
                params: PhysiologyParameters = PhysiologyParameters()) -> float:
    """Maintenance respiration with Q10 temperature scaling."""
    temperature_factor = params.q10 ** ((temperature - params.reference_temperature) / 10.0)
    return params.base_respiration_rate * temperature_factor * (total_biomass / 100.0)


def composite_stress(env: EnvironmentSnapshot,
                     params: StressParameters = StressParameters()) -> float:
    """Environmental stress index in [0, max_stress]."""
    stress = 0.0

    if env.water < params.water_low:
        stress += (params.water_low - env.water) / params.water_low * params.water_low_weight
    elif env.water > params.water_high:
        stress += (env.water - params.water_high) / params.water_high_span * params.water_high_weight

    t = env.temperature
    if t < params.severe_temperature_min or t > params.severe_temperature_max:
        stress += params.severe_temperature_penalty
    elif t < params.moderate_temperature_min or t > params.moderate_temperature_max:
        stress += params.moderate_temperature_penalty

    if env.light < params.light_min:
        stress += (params.light_min - env.light) / params.light_min * params.light_weight

    if env.disease:
        stress += params.disease_penalty
    if env.pests:
        stress += params.pests_penalty
    if env.storm:
        stress += params.storm_penalty
    if env.pollution:
        stress += params.pollution_penalty

    return min(params.max_stress, stress)


def net_growth_factor(net_carbon: float, stress: float, seasonal_multiplier: float,
                      dormant: bool, params: PhysiologyParameters = PhysiologyParameters()) -> float:
    """Scalar gating all growth; exactly 0.0 while dormant."""
    if dormant:
        return 0.0
    return max(0.0, (net_carbon * params.carbon_weight - stress * params.stress_weight)
               * seasonal_multiplier)


def evapotranspiration(temperature: float, wind_speed: float, humidity: float,
                       params: PhysiologyParameters = PhysiologyParameters()) -> float:
    """Daily water loss driven by temperature, wind and air dryness."""
    temperature_factor = max(0.0, temperature / params.et_temperature_scale)
    return (temperature_factor * (1.0 + wind_speed / 100.0)
            * (1.0 - humidity / 100.0) * params.et_coefficient)


class PhysiologyEngine:
    """Evaluates physiology for one tree against an environment snapshot."""

    def __init__(self, phenology: PhenologyModel,
                 params: PhysiologyParameters = PhysiologyParameters(),
                 stress_params: StressParameters = StressParameters()):
        self.phenology = phenology
        self.params = params
        self.stress_params = stress_params

    def evaluate(self, tree: 'TreeState', env: EnvironmentSnapshot) -> PhysiologyResult:
        photo = photosynthesis(env.light, env.water, env.soil_quality, self.params)
        resp = respiration(env.temperature, tree.biomass.total, self.params)
        net_carbon = photo - resp
        stress = composite_stress(env, self.stress_params)
        multiplier = self.phenology.growth_multiplier(env)
        dormant = self.phenology.is_dormant(env)
        return PhysiologyResult(
            photosynthesis=photo,
            respiration=resp,
            net_carbon=net_carbon,
            stress=stress,
            seasonal_multiplier=multiplier,
            dormant=dormant,
            net_growth_factor=net_growth_factor(net_carbon, stress, multiplier, dormant, self.params),
            evapotranspiration=evapotranspiration(env.temperature, env.wind_speed,
                                                  env.humidity, self.params),
        )

    def exchange_gases(self, tree: 'TreeState', result: PhysiologyResult, dt: float,
                       days_per_year: float = 365.0) -> None:
        """Accumulate CO2 uptake and O2 release; dormant trees exchange nothing."""
        if not tree.alive or result.dormant:
            return
        effective_leaf_area = tree.foliage.leaf_area * tree.foliage.opacity
        assimilation = result.photosynthesis * effective_leaf_area * dt / days_per_year
        tree.exchange.co2_absorbed += assimilation * self.params.co2_absorption_rate
        tree.exchange.o2_produced += assimilation * self.params.o2_production_rate
        tree.exchange.carbon_stored = tree.biomass.total * self.params.carbon_fraction
