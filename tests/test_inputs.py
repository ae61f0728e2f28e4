"""
Tests for the variables-document input adapter.
"""
import pytest

from pytreesim.inputs import SimulationSettings, apply_variables, load_variables
from pytreesim.mortality import MortalityParameters


@pytest.fixture
def settings():
    return SimulationSettings(mortality=MortalityParameters(max_age=500.0))


class TestUiDefaults:

    @pytest.mark.parametrize("document,name,expected", [
        pytest.param({'water_level': 0.35}, 'water', 35.0, id="water_fraction"),
        pytest.param({'light_intensity': 1.7}, 'light', 100.0, id="light_clamped"),
        pytest.param({'light_intensity': -0.2}, 'light', 0.0, id="light_negative"),
        pytest.param({'temperature': 80}, 'temperature', 50.0, id="temperature_high"),
        pytest.param({'temperature': 'warm'}, 'temperature', 20.0, id="temperature_fallback"),
    ])
    def test_ui_values(self, settings, document, name, expected):
        result = apply_variables({'ui_defaults': document}, settings)
        assert result.environment[name] == pytest.approx(expected)

    def test_missing_values_keep_current(self, settings):
        current = apply_variables({'environment': {'water': 15}}, settings)
        result = apply_variables({'ui_defaults': {'light_intensity': 0.5}}, current)
        assert result.environment['water'] == 15.0
        assert result.environment['light'] == 50.0


class TestEnvironmentSection:

    def test_conditions_and_flags(self, settings):
        result = apply_variables({
            'environment': {'wind_speed': 250, 'humidity': '40', 'storm': 'yes'},
            'stressors': {'disease': 1},
        }, settings)
        assert result.environment['wind_speed'] == 100.0
        assert result.environment['humidity'] == 40.0
        assert result.environment['storm'] is True
        assert result.environment['disease'] is True

    def test_unknown_conditions_ignored(self, settings):
        result = apply_variables({'environment': {'rainfall': 10}}, settings)
        assert 'rainfall' not in result.environment


class TestOverrides:

    @pytest.mark.parametrize("value,expected", [
        pytest.param(20, 10.0, id="too_fast"),
        pytest.param(-1, 0.0, id="negative"),
        pytest.param('nan', 1.0, id="nan_keeps_current"),
        pytest.param(2.5, 2.5, id="in_range"),
    ])
    def test_simulation_speed(self, settings, value, expected):
        result = apply_variables({'config_overrides': {'simulation_speed': value}}, settings)
        assert result.simulation_speed == expected

    @pytest.mark.parametrize("value,expected", [
        pytest.param('no', False, id="no"),
        pytest.param(False, False, id="false"),
        pytest.param('banana', True, id="unrecognised_keeps_current"),
    ])
    def test_enable_mortality(self, settings, value, expected):
        result = apply_variables({'config_overrides': {'enable_mortality': value}}, settings)
        assert result.enable_mortality is expected

    def test_enable_growth(self, settings):
        result = apply_variables({'config_overrides': {'enable_growth': 'off'}}, settings)
        assert result.enable_growth is False


class TestMortalitySettings:

    @pytest.mark.parametrize("section,key,value,field,expected", [
        pytest.param('hdr_parameters', 'max_age', 10000, 'max_age', 5000.0, id="max_age_cap"),
        pytest.param('hdr_parameters', 'base_mortality_rate', 9, 'base_rate_per_year', 5.0,
                     id="base_rate_cap"),
        pytest.param('hdr_parameters', 'base_mortality_rate', 'nan', 'base_rate_per_year',
                     0.001, id="base_rate_nan"),
        pytest.param('stressors', 'drought_threshold', 2, 'drought_threshold', 1.0,
                     id="drought_threshold_cap"),
        pytest.param('stressors', 'heat_stress_temp', 40, 'heat_stress_temp', 40.0,
                     id="heat_temperature"),
        pytest.param('stressors', 'disease_base_rate', -1, 'disease_base_rate_per_year', 0.0,
                     id="disease_rate_floor"),
        pytest.param('stressors', 'storm_frequency', 0.2, 'storm_frequency', 0.2,
                     id="storm_frequency"),
    ])
    def test_clamped(self, settings, section, key, value, field, expected):
        result = apply_variables({section: {key: value}}, settings)
        assert getattr(result.mortality, field) == pytest.approx(expected)

    def test_senescence_never_exceeds_max_age(self, settings):
        result = apply_variables({'hdr_parameters': {
            'max_age': 80, 'senescence_start_age': 120,
        }}, settings)
        assert result.mortality.max_age == 80.0
        assert result.mortality.senescence_start_age == 80.0

    def test_unset_mortality_stays_unset(self):
        result = apply_variables({'environment': {'water': 30}}, SimulationSettings())
        assert result.mortality is None
        assert result.enable_mortality is True
        assert result.to_dict()['mortality'] is None

    def test_override_without_base_uses_generic_parameters(self):
        result = apply_variables({'config_overrides': {'enable_mortality': False}},
                                 SimulationSettings())
        assert result.mortality.enabled is False
        assert result.mortality.max_age == 600.0

    def test_resistances_preserved(self):
        current = SimulationSettings(mortality=MortalityParameters(
            max_age=500.0, fire_resistance=0.7, windthrow_resistance=0.4))
        result = apply_variables({'hdr_parameters': {'max_age': 300}}, current)
        assert result.mortality.fire_resistance == 0.7
        assert result.mortality.windthrow_resistance == 0.4


class TestDocuments:

    @pytest.mark.parametrize("document", [
        pytest.param(None, id="none"),
        pytest.param([1, 2], id="list"),
        pytest.param("water: 10", id="string"),
    ])
    def test_non_mapping_ignored(self, settings, document):
        assert apply_variables(document, settings) == settings

    def test_bad_section_ignored(self, settings):
        result = apply_variables({'environment': [1, 2], 'ui_defaults': {'water_level': 0.1}},
                                 settings)
        assert result.environment['water'] == pytest.approx(10.0)

    def test_input_not_mutated(self, settings):
        document = {'environment': {'water': 500}}
        apply_variables(document, settings)
        assert document == {'environment': {'water': 500}}

    def test_load_variables_file(self, settings, tmp_path):
        path = tmp_path / 'variables.yaml'
        path.write_text(
            "ui_defaults:\n"
            "  water_level: 0.25\n"
            "config_overrides:\n"
            "  simulation_speed: 3\n"
        )
        result = load_variables(path, settings)
        assert result.environment['water'] == 25.0
        assert result.simulation_speed == 3.0

    def test_settings_to_dict(self, settings):
        data = settings.to_dict()
        assert data['simulation_speed'] == 1.0
        assert data['mortality']['max_age'] == 500.0
        assert data['environment']['water'] == 60.0
