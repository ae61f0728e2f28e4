"""
Tests for snapshot persistence and trajectory export.
"""
import json

import pandas as pd
import pytest

from pytreesim.data_export import SNAPSHOT_FORMAT, SNAPSHOT_VERSION, DataExporter
from pytreesim.exceptions import (
    FileNotFoundError as TreeSimFileNotFoundError, InvalidDataError, SnapshotVersionError,
)
from pytreesim.simulation_config import SimulationConfig
from pytreesim.simulation_engine import Simulation


@pytest.fixture
def exporter():
    return DataExporter()


@pytest.fixture
def running(simulation):
    """Simulation a few days into its run, with leftover scheduler time."""
    simulation.run_days(3)
    simulation.tick(0.01)
    return simulation


def continue_both(first, second, substeps=300):
    first.run_substeps(substeps)
    second.run_substeps(substeps)


class TestSnapshot:

    def test_snapshot_contents(self, exporter, running):
        data = exporter.snapshot(running)
        assert data['format'] == SNAPSHOT_FORMAT
        assert data['version'] == SNAPSHOT_VERSION
        assert data['species'] == 'OAK'
        assert data['seed'] == 42
        assert data['scheduler']['accumulator'] == running.scheduler.accumulator
        assert data['tree']['days_since_birth'] == running.tree.days_since_birth

    def test_restore_continues_identically(self, exporter, running):
        restored = exporter.restore(exporter.snapshot(running))
        continue_both(running, restored)
        assert restored.tree.to_dict() == running.tree.to_dict()
        assert restored.environment.to_dict() == running.environment.to_dict()
        assert restored.rng.draws == running.rng.draws

    def test_restore_keeps_settings(self, exporter, running):
        running.apply_variables({
            'config_overrides': {'enable_growth': False, 'simulation_speed': 3},
            'hdr_parameters': {'max_age': 250},
        })
        restored = exporter.restore(exporter.snapshot(running))
        assert restored.engine.enable_growth is False
        assert restored.scheduler.speed_multiplier == 3.0
        assert restored.engine.mortality_params.max_age == 250.0

    def test_restore_keeps_configuration(self, exporter):
        config = SimulationConfig.load({'scheduler': {'substep_days': 0.25}})
        original = Simulation.create(seed=11, config=config)
        original.apply_variables({'config_overrides': {'enable_mortality': False}})
        original.run_substeps(40)
        restored = exporter.restore(exporter.snapshot(original))
        assert restored.scheduler.substep == 0.25
        assert restored.engine.config == original.engine.config
        continue_both(original, restored, substeps=400)
        assert restored.tree.to_dict() == original.tree.to_dict()
        assert restored.environment.to_dict() == original.environment.to_dict()

    def test_snapshot_without_configuration_uses_exporter_config(self, running):
        config = SimulationConfig.load({'scheduler': {'substep_days': 0.5}})
        data = DataExporter().snapshot(running)
        del data['config']
        restored = DataExporter(config).restore(data)
        assert restored.scheduler.substep == 0.5

    def test_invalid_configuration(self, exporter, running):
        data = exporter.snapshot(running)
        data['config'] = {'scheduler': {'substep_days': -1}}
        with pytest.raises(InvalidDataError):
            exporter.restore(data)

    @pytest.mark.parametrize("version", [0, 99, None, "1"])
    def test_other_versions_rejected(self, exporter, running, version):
        data = exporter.snapshot(running)
        data['version'] = version
        with pytest.raises(SnapshotVersionError):
            exporter.restore(data)

    @pytest.mark.parametrize("data", [
        pytest.param({}, id="empty"),
        pytest.param({'version': 1}, id="missing_format"),
        pytest.param([1, 2, 3], id="not_a_mapping"),
    ])
    def test_not_a_snapshot(self, exporter, data):
        with pytest.raises(InvalidDataError):
            exporter.restore(data)

    def test_malformed_snapshot(self, exporter, running):
        data = exporter.snapshot(running)
        del data['tree']
        with pytest.raises(InvalidDataError):
            exporter.restore(data)

    def test_invalid_mortality_settings(self, exporter, running):
        data = exporter.snapshot(running)
        data['mortality']['drought_threshold'] = 4.0
        with pytest.raises(InvalidDataError):
            exporter.restore(data)


class TestSnapshotFiles:

    @pytest.mark.parametrize("fmt,suffix", [
        pytest.param('json', '.json', id="json"),
        pytest.param('yaml', '.yaml', id="yaml"),
    ])
    def test_file_round_trip(self, exporter, running, tmp_path, fmt, suffix):
        path = exporter.save_snapshot(running, tmp_path / 'saves' / 'tree', format=fmt)
        assert path.endswith(suffix)
        restored = exporter.load_snapshot(path)
        continue_both(running, restored)
        assert restored.tree.to_dict() == running.tree.to_dict()

    def test_suffix_follows_format(self, exporter, running, tmp_path):
        path = exporter.save_snapshot(running, tmp_path / 'tree.json', format='yaml')
        assert path.endswith('.yaml')
        restored = exporter.load_snapshot(path)
        assert restored.tree.to_dict() == running.tree.to_dict()

    def test_json_file_is_readable(self, exporter, running, tmp_path):
        path = exporter.save_snapshot(running, tmp_path / 'tree.json')
        with open(path) as f:
            assert json.load(f)['version'] == SNAPSHOT_VERSION

    def test_missing_file(self, exporter, tmp_path):
        with pytest.raises(TreeSimFileNotFoundError):
            exporter.load_snapshot(tmp_path / 'nope.json')

    def test_corrupt_file(self, exporter, tmp_path):
        path = tmp_path / 'broken.json'
        path.write_text('{"format": ')
        with pytest.raises(InvalidDataError):
            exporter.load_snapshot(path)

    def test_unsupported_format(self, exporter, running, tmp_path):
        with pytest.raises(ValueError):
            exporter.save_snapshot(running, tmp_path / 'tree', format='xml')


class TestTrajectoryExport:

    @pytest.fixture
    def recorded(self):
        sim = Simulation.create(seed=5)
        sim.apply_variables({'config_overrides': {'enable_mortality': False}})
        sim.record_trajectory(every=60)
        sim.run_days(5)
        return sim

    def test_csv(self, exporter, recorded, tmp_path):
        path = exporter.export_trajectory(recorded, tmp_path / 'trajectory')
        assert path.endswith('.csv')
        df = pd.read_csv(path)
        assert len(df) == 5
        assert df['height'].is_monotonic_increasing

    def test_json(self, exporter, recorded, tmp_path):
        path = exporter.export_trajectory(recorded, tmp_path / 'trajectory', format='json')
        with open(path) as f:
            data = json.load(f)
        assert data['metadata']['rows'] == 5
        assert data['metadata']['species'] == 'OAK'
        assert len(data['rows']) == 5

    def test_no_recorder(self, exporter, simulation, tmp_path):
        with pytest.raises(InvalidDataError):
            exporter.export_trajectory(simulation, tmp_path / 'trajectory')

    @pytest.mark.parametrize("filename,fmt,suffix", [
        pytest.param('trajectory.csv', 'json', '.json', id="csv_name_json_format"),
        pytest.param('trajectory.json', 'csv', '.csv', id="json_name_csv_format"),
        pytest.param('trajectory.xlsx', 'csv', '.csv', id="excel_name_csv_format"),
    ])
    def test_suffix_follows_format(self, exporter, recorded, tmp_path, filename, fmt, suffix):
        path = exporter.export_trajectory(recorded, tmp_path / filename, format=fmt)
        assert path.endswith(suffix)
        assert not (tmp_path / filename).exists()

    def test_unsupported_format_writes_nothing(self, exporter, recorded, tmp_path):
        with pytest.raises(ValueError):
            exporter.export_trajectory(recorded, tmp_path / 'out' / 'trajectory', format='xml')
        assert not (tmp_path / 'out').exists()
