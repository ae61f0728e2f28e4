"""
Vitality tracker: health, vigor, chronic stress, disease load, foliage and
water content.

Health integrates the physiology signal plus small Gaussian noise; the
other indices are first-order filters so that conditions persist across
substeps instead of snapping.
"""
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .environment import EnvironmentSnapshot, Season
from .physiology import PhysiologyResult
from .rng import SeededRandom
from .species import SpeciesProfile
from .validation import clamp

if TYPE_CHECKING:
    from .tree import TreeState


@dataclass(frozen=True)
class VitalityParameters:
    """Rates and filter constants of the vitality indices."""
    growth_weight: float = 10.0
    recovery_weight: float = 0.5
    photosynthesis_recovery: float = 0.5
    calm_recovery: float = 0.1
    stress_impact: float = 20.0
    noise_std: float = 0.3
    vigor_retention: float = 0.98
    stress_retention: float = 0.95
    stress_accumulation: float = 30.0
    disease_rise_rate: float = 2.0
    disease_decay_rate: float = 0.5
    disease_resistance_effect: float = 0.5
    opacity_smoothing: float = 0.08
    density_smoothing: float = 0.06
    foliage_stress_threshold: float = 40.0
    foliage_stress_span: float = 120.0
    root_uptake_coefficient: float = 0.5


class VitalityTracker:
    """Updates the vitality indices of one tree each substep."""

    def __init__(self, species: SpeciesProfile,
                 params: VitalityParameters = VitalityParameters()):
        self.species = species
        self.params = params

    def update(self, tree: 'TreeState', env: EnvironmentSnapshot,
               result: PhysiologyResult, dt: float, rng: SeededRandom) -> None:
        """Run the health, vigor, stress, disease and foliage updates in order."""
        if not tree.alive:
            return
        self.update_health(tree, result, dt, rng)
        self.update_vigor(tree, result)
        self.update_stress_level(tree, result, dt)
        self.update_disease(tree, env, dt)
        self.update_foliage(tree, env)

    def update_health(self, tree: 'TreeState', result: PhysiologyResult, dt: float,
                      rng: SeededRandom) -> None:
        p = self.params
        vitality = tree.vitality
        recovery = (result.photosynthesis * p.photosynthesis_recovery
                    + (100.0 - vitality.stress_level) * p.calm_recovery)
        delta = (result.net_growth_factor * p.growth_weight
                 + recovery * p.recovery_weight
                 - result.stress * p.stress_impact)
        noise = rng.gauss(0.0, p.noise_std)
        vitality.health = clamp(vitality.health + delta * dt + noise * dt, 0.0, 100.0)

    def update_vigor(self, tree: 'TreeState', result: PhysiologyResult) -> None:
        p = self.params
        vitality = tree.vitality
        vigor = (vitality.vigor * p.vigor_retention
                 + vitality.health * result.net_growth_factor * (1.0 - p.vigor_retention))
        vitality.vigor = clamp(vigor, 0.0, 100.0)

    def update_stress_level(self, tree: 'TreeState', result: PhysiologyResult, dt: float) -> None:
        p = self.params
        vitality = tree.vitality
        level = vitality.stress_level * p.stress_retention + result.stress * p.stress_accumulation * dt
        vitality.stress_level = clamp(level, 0.0, 100.0)

    def update_disease(self, tree: 'TreeState', env: EnvironmentSnapshot, dt: float) -> None:
        p = self.params
        vitality = tree.vitality
        if env.disease:
            susceptibility = 1.0 - tree.disease_resistance * p.disease_resistance_effect
            rise = dt * p.disease_rise_rate * (100.0 - vitality.health) / 100.0 * susceptibility
            vitality.disease_load = min(100.0, vitality.disease_load + rise)
        else:
            vitality.disease_load = max(0.0, vitality.disease_load - dt * p.disease_decay_rate)

    def update_foliage(self, tree: 'TreeState', env: EnvironmentSnapshot) -> None:
        """Smooth canopy opacity and density toward seasonal targets."""
        p = self.params
        evergreen = self.species.evergreen
        health01 = tree.vitality.health / 100.0
        target_opacity = health01
        target_density = health01
        progress = env.season_progress

        if env.season == Season.WINTER:
            if evergreen:
                target_opacity *= 0.7
                target_density *= 0.8
            else:
                target_opacity *= 0.05
                target_density *= 0.1
        elif env.season == Season.AUTUMN:
            if evergreen:
                target_opacity *= 0.8
                target_density *= 0.85
            else:
                # Higher retention keeps leaves later into autumn
                fade = 1.0 - progress ** 1.5 * (1.0 - self.species.autumn_leaf_drop * 0.3)
                target_opacity *= fade
                target_density *= fade
        elif env.season == Season.SPRING:
            leaf_out = self.species.spring_leaf_out
            emergence = progress ** 0.7 * (1.0 - leaf_out) + leaf_out
            target_opacity *= emergence
            target_density *= 0.4 + emergence * 0.6
        else:
            target_density = min(1.0, target_density * 1.1)

        stress_level = tree.vitality.stress_level
        if stress_level > p.foliage_stress_threshold:
            target_opacity *= 1.0 - (stress_level - p.foliage_stress_threshold) / p.foliage_stress_span

        foliage = tree.foliage
        foliage.opacity = clamp(
            foliage.opacity + (target_opacity - foliage.opacity) * p.opacity_smoothing, 0.0, 1.0)
        foliage.density = clamp(
            foliage.density + (target_density - foliage.density) * p.density_smoothing, 0.0, 1.0)

    def update_water(self, tree: 'TreeState', env: EnvironmentSnapshot,
                     result: PhysiologyResult, dt: float) -> None:
        """Root uptake minus evapotranspiration; transpired water is accumulated."""
        if not tree.alive:
            return
        morphology = tree.morphology
        uptake = ((env.water / 100.0) * morphology.root_depth * morphology.root_spread
                  * self.params.root_uptake_coefficient)
        vitality = tree.vitality
        vitality.water_content = clamp(
            vitality.water_content + (uptake - result.evapotranspiration) * dt, 0.0, 100.0)
        tree.exchange.water_transpired += result.evapotranspiration * dt
