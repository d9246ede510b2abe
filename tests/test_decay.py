"""
Tests for decay schedules
"""

import numpy as np
import pytest

from multisom.config import TrainingConfig
from multisom.decay import Constant, DecaySchedule, Linear, Polynomial, Power
from multisom.errors import ConfigurationError

SCHEDULES = [
    Constant(0.3),
    Linear(0.5, 0.01),
    Power(0.5, 0.01),
    Polynomial(10.0, 0.7, 2.0),
]


@pytest.mark.unit
class TestDecayValues:
    """Test schedule values over the epochs"""

    @pytest.mark.unit
    @pytest.mark.parametrize("schedule", SCHEDULES)
    def test_endpoints(self, schedule):
        total = 100
        assert schedule.decay(0, total) == pytest.approx(schedule.start)
        assert schedule.decay(total, total) == pytest.approx(schedule.end)

    @pytest.mark.unit
    @pytest.mark.parametrize("schedule", [Linear(0.5, 0.01), Power(0.5, 0.01)])
    def test_monotonic(self, schedule):
        values = [schedule.decay(e, 50) for e in range(51)]
        assert np.all(np.diff(values) <= 0)

    @pytest.mark.unit
    def test_increasing_linear(self):
        schedule = Linear(0.1, 1.0)
        values = [schedule.decay(e, 20) for e in range(21)]
        assert np.all(np.diff(values) >= 0)

    @pytest.mark.unit
    def test_midpoints(self):
        assert Linear(1.0, 0.0).decay(5, 10) == pytest.approx(0.5)
        assert Power(1.0, 0.01).decay(5, 10) == pytest.approx(0.1)
        assert Polynomial(1.0, 0.0, 2.0).decay(5, 10) == pytest.approx(0.25)
        assert Constant(0.3).decay(5, 10) == pytest.approx(0.3)

    @pytest.mark.unit
    @pytest.mark.parametrize("schedule", SCHEDULES)
    def test_zero_total_returns_end(self, schedule):
        assert schedule.decay(0, 0) == pytest.approx(schedule.end)


@pytest.mark.unit
class TestDecayParsing:
    """Test the string form of schedules"""

    @pytest.mark.unit
    def test_parse(self):
        assert DecaySchedule.from_string("linear 0.5 0.01") == Linear(0.5, 0.01)
        assert DecaySchedule.from_string("polynomial 0.25 0.01 2") == Polynomial(
            0.25, 0.01, 2.0
        )
        assert DecaySchedule.from_string("Constant 0.2") == Constant(0.2)

    @pytest.mark.unit
    def test_bare_name_gives_defaults(self):
        assert DecaySchedule.from_string("power") == Power()

    @pytest.mark.unit
    @pytest.mark.parametrize("schedule", SCHEDULES)
    def test_round_trip(self, schedule):
        assert DecaySchedule.from_string(schedule.to_string()) == schedule

    @pytest.mark.unit
    def test_unknown_name(self):
        with pytest.raises(ConfigurationError, match="exponential"):
            DecaySchedule.from_string("exponential 1 0.1")

    @pytest.mark.unit
    def test_wrong_argument_count(self):
        with pytest.raises(ConfigurationError, match="linear"):
            DecaySchedule.from_string("linear 0.5")

    @pytest.mark.unit
    def test_invalid_argument(self):
        with pytest.raises(ConfigurationError):
            DecaySchedule.from_string("linear 0.5 abc")

    @pytest.mark.unit
    def test_empty(self):
        with pytest.raises(ConfigurationError):
            DecaySchedule.from_string("  ")

    @pytest.mark.unit
    @pytest.mark.parametrize("text", ["power 0 0.1", "power 0.5 -0.1", "power -0.5 0"])
    def test_invalid_power_arguments(self, text):
        with pytest.raises(ConfigurationError, match="power"):
            DecaySchedule.from_string(text)

    @pytest.mark.unit
    def test_invalid_power_in_training_config(self):
        with pytest.raises(ConfigurationError):
            TrainingConfig(learning_rate="power 0 0.1")
