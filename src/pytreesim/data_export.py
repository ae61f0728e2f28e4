"""
Snapshot persistence and trajectory export.

A snapshot captures everything needed to resume a run deterministically:
the tree, the environment and clock, the model configuration, the mortality
settings, the scheduler carry and the RNG state. Snapshots are tagged with SNAPSHOT_VERSION and
any other version is rejected on load.
"""
import json
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from .environment import EnvironmentState
from .exceptions import (
    ConfigurationError, FileNotFoundError, InvalidDataError, ParameterError,
    SnapshotVersionError,
)
from .history import HealthHistory
from .logging_config import get_logger
from .mortality import MortalityParameters
from .rng import SeededRandom
from .scheduler import SchedulerSettings
from .simulation_config import SimulationConfig
from .simulation_engine import Simulation, SimulationEngine
from .species import get_species_profile
from .tree import TreeState

logger = get_logger(__name__)

SNAPSHOT_VERSION = 1
SNAPSHOT_FORMAT = 'pytreesim.snapshot'

_EXTENSIONS = {'json': '.json', 'yaml': '.yaml', 'csv': '.csv', 'excel': '.xlsx'}


class DataExporter:
    """Saves and restores simulation snapshots and exports trajectories.

    Args:
        config: Model constants for snapshots that carry no configuration;
            packaged defaults when omitted
    """

    def __init__(self, config: Optional[SimulationConfig] = None):
        self.config = config

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------
    def snapshot(self, simulation: Simulation) -> Dict[str, Any]:
        """Serializable snapshot of a simulation."""
        engine = simulation.engine
        scheduler = simulation.scheduler
        return {
            'format': SNAPSHOT_FORMAT,
            'version': SNAPSHOT_VERSION,
            'species': engine.species.code,
            'seed': engine.rng.seed_value,
            'rng_state': engine.rng.get_state(),
            'config': engine.config.to_dict(),
            'tree': engine.tree.to_dict(),
            'environment': engine.environment.to_dict(),
            'mortality': engine.mortality_params.to_dict(),
            'enable_growth': engine.enable_growth,
            'engine_substeps': engine.substeps,
            'scheduler': {
                'accumulator': scheduler.accumulator,
                'total_substeps': scheduler.total_substeps,
                'simulated_days': scheduler.simulated_days,
                'speed_multiplier': scheduler.speed_multiplier,
                'is_paused': scheduler.is_paused,
            },
            'health_history': engine.history.to_dict(),
        }

    def restore(self, data: Mapping[str, Any]) -> Simulation:
        """Rebuild a Simulation from a snapshot dictionary.

        Raises:
            SnapshotVersionError: If the snapshot version is not SNAPSHOT_VERSION
            InvalidDataError: If the snapshot is malformed
        """
        if not isinstance(data, Mapping) or data.get('format') != SNAPSHOT_FORMAT:
            raise InvalidDataError("snapshot", "not a pytreesim snapshot")
        version = data.get('version')
        if version != SNAPSHOT_VERSION:
            raise SnapshotVersionError(version, SNAPSHOT_VERSION)

        try:
            if data.get('config') is not None:
                config = SimulationConfig.from_dict(data['config'])
            else:
                config = self.config or SimulationConfig.load()
            profile = get_species_profile(data['species'])
            rng = SeededRandom()
            rng.set_state(data['rng_state'])
            tree = TreeState.from_dict(data['tree'])
            environment = EnvironmentState.from_dict(data['environment'], config.calendar)
            mortality = MortalityParameters(**data['mortality'])
            engine = SimulationEngine(tree, environment, rng, profile, config,
                                      mortality_params=mortality,
                                      enable_growth=bool(data.get('enable_growth', True)))
            engine.substeps = int(data.get('engine_substeps', 0))
            if 'health_history' in data:
                engine.history = HealthHistory.from_dict(data['health_history'])

            simulation = Simulation(engine, SchedulerSettings(
                substep_days=config.scheduler.substep_days,
                max_substeps_per_call=config.scheduler.max_substeps_per_call,
                max_frame_seconds=config.scheduler.max_frame_seconds,
                speed_multiplier=float(data['scheduler']['speed_multiplier']),
            ))
            scheduler_state = data['scheduler']
            simulation.scheduler.accumulator = float(scheduler_state['accumulator'])
            simulation.scheduler.total_substeps = int(scheduler_state['total_substeps'])
            simulation.scheduler.simulated_days = float(scheduler_state['simulated_days'])
            simulation.scheduler.is_paused = bool(scheduler_state.get('is_paused', False))
        except (KeyError, TypeError, ValueError, ParameterError, ConfigurationError) as e:
            raise InvalidDataError("snapshot", f"malformed snapshot: {e}") from e

        logger.info(f"Restored {profile.code} tree {tree.tree_id} at age {tree.age:.2f}y")
        return simulation

    def save_snapshot(self, simulation: Simulation, filepath: Union[str, Path],
                      format: str = 'json') -> str:
        """Write a snapshot file.

        Args:
            simulation: Simulation to save
            filepath: Output file path (suffix replaced to match ``format``)
            format: 'json' or 'yaml'

        Returns:
            Path to the written file
        """
        if format not in ('json', 'yaml'):
            raise ValueError(f"Unsupported format: {format}. Use 'json' or 'yaml'")
        path = Path(filepath)
        suffixes = ('.yaml', '.yml') if format == 'yaml' else ('.json',)
        if path.suffix.lower() not in suffixes:
            path = path.with_suffix(_EXTENSIONS[format])
        path.parent.mkdir(parents=True, exist_ok=True)

        data = self.snapshot(simulation)
        with open(path, 'w', encoding='utf-8') as f:
            if format == 'json':
                json.dump(data, f, indent=2)
            else:
                yaml.safe_dump(data, f, sort_keys=False)
        logger.info(f"Saved snapshot to {path}")
        return str(path)

    def load_snapshot(self, filepath: Union[str, Path]) -> Simulation:
        """Read a JSON or YAML snapshot file and restore it."""
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(str(path), "snapshot")
        try:
            with open(path, 'r', encoding='utf-8') as f:
                if path.suffix.lower() in ('.yaml', '.yml'):
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise InvalidDataError(str(path), f"unreadable snapshot: {e}") from e
        return self.restore(data)

    # ------------------------------------------------------------------
    # Trajectories
    # ------------------------------------------------------------------
    def export_trajectory(self, simulation: Simulation, filepath: Union[str, Path],
                          format: str = 'csv') -> str:
        """Export the recorded trajectory.

        Args:
            simulation: Simulation with a trajectory recorder attached
            filepath: Output file path (suffix replaced to match ``format``)
            format: 'csv', 'json' or 'excel'

        Returns:
            Path to the exported file
        """
        if format not in ('csv', 'json', 'excel'):
            raise ValueError(f"Unsupported format: {format}. Use 'csv', 'json', or 'excel'")
        recorder = simulation.engine.recorder
        if recorder is None:
            raise InvalidDataError("trajectory", "no trajectory recorder attached")
        df = recorder.to_dataframe()

        path = Path(filepath)
        if path.suffix.lower() != _EXTENSIONS[format]:
            path = path.with_suffix(_EXTENSIONS[format])
        path.parent.mkdir(parents=True, exist_ok=True)

        if format == 'csv':
            df.to_csv(path, index=False)
        elif format == 'json':
            with open(path, 'w', encoding='utf-8') as f:
                json.dump({
                    'metadata': {
                        'species': simulation.engine.species.code,
                        'seed': simulation.rng.seed_value,
                        'rows': len(recorder),
                        'format': 'pytreesim.trajectory',
                    },
                    'rows': recorder.rows(),
                }, f, indent=2)
        else:
            df.to_excel(path, index=False, sheet_name='Trajectory')

        return str(path)
