"""
Recorders for simulation output.

HealthHistory keeps a bounded, periodically sampled health series for
display. TrajectoryRecorder keeps one row per recorded substep and turns
them into a pandas DataFrame for analysis, plotting or CSV export.
"""
from collections import deque
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from .environment import EnvironmentSnapshot
from .tree import TreeState, status_label


class HealthHistory:
    """Health sampled every ``sample_interval`` substeps, keeping the newest ``max_samples``."""

    def __init__(self, sample_interval: int = 5, max_samples: int = 600):
        self.sample_interval = max(1, int(sample_interval))
        self.max_samples = max(1, int(max_samples))
        self._samples = deque(maxlen=self.max_samples)
        self._counter = 0

    def record(self, health: float) -> bool:
        """Count one substep and sample on every ``sample_interval``-th call.

        Returns:
            True if a sample was stored
        """
        sampled = self._counter % self.sample_interval == 0
        self._counter += 1
        if sampled:
            self._samples.append(round(health, 1))
        return sampled

    def values(self) -> List[float]:
        return list(self._samples)

    def clear(self) -> None:
        self._samples.clear()
        self._counter = 0

    def __len__(self) -> int:
        return len(self._samples)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sample_interval': self.sample_interval,
            'max_samples': self.max_samples,
            'counter': self._counter,
            'samples': self.values(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HealthHistory":
        history = cls(data.get('sample_interval', 5), data.get('max_samples', 600))
        history._samples.extend(float(v) for v in data.get('samples', []))
        history._counter = int(data.get('counter', 0))
        return history


class TrajectoryRecorder:
    """Collects tree and environment readouts at a fixed substep interval.

    Args:
        every: Record one row every this many calls to record()
    """

    COLUMNS = [
        'substep', 'year', 'day_of_year', 'season', 'age', 'height', 'dbh',
        'crown_radius', 'crown_volume', 'leaf_area', 'leaf_area_index',
        'biomass_total', 'trunk', 'branches', 'leaves', 'roots',
        'health', 'vigor', 'water_content', 'stress_level', 'disease_load',
        'chlorophyll', 'co2_absorbed', 'carbon_stored', 'dormant', 'alive', 'status',
    ]

    def __init__(self, every: int = 60):
        self.every = max(1, int(every))
        self._rows: List[Dict[str, Any]] = []
        self._counter = 0

    def record(self, tree: TreeState, env: EnvironmentSnapshot, force: bool = False) -> bool:
        due = force or self._counter % self.every == 0
        substep = self._counter
        self._counter += 1
        if not due:
            return False
        m = tree.morphology
        v = tree.vitality
        self._rows.append({
            'substep': substep,
            'year': env.year,
            'day_of_year': env.day_of_year,
            'season': env.season.value,
            'age': tree.age,
            'height': m.height,
            'dbh': m.dbh,
            'crown_radius': m.crown_radius,
            'crown_volume': m.crown_volume,
            'leaf_area': tree.foliage.leaf_area,
            'leaf_area_index': tree.leaf_area_index,
            'biomass_total': tree.biomass.total,
            'trunk': tree.biomass.trunk,
            'branches': tree.biomass.branches,
            'leaves': tree.biomass.leaves,
            'roots': tree.biomass.roots,
            'health': v.health,
            'vigor': v.vigor,
            'water_content': v.water_content,
            'stress_level': v.stress_level,
            'disease_load': v.disease_load,
            'chlorophyll': v.chlorophyll_content,
            'co2_absorbed': tree.exchange.co2_absorbed,
            'carbon_stored': tree.exchange.carbon_stored,
            'dormant': tree.phenology.dormant,
            'alive': tree.alive,
            'status': status_label(tree),
        })
        return True

    def __len__(self) -> int:
        return len(self._rows)

    def rows(self) -> List[Dict[str, Any]]:
        return [dict(row) for row in self._rows]

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(self._rows, columns=self.COLUMNS)

    def to_csv(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.to_dataframe().to_csv(path, index=False)
        return path

    def clear(self) -> None:
        self._rows.clear()
        self._counter = 0

    def last(self) -> Optional[Dict[str, Any]]:
        return dict(self._rows[-1]) if self._rows else None
