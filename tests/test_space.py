"""Tests for the configuration-space model."""

from __future__ import annotations

import pytest

from gputune.device import DeviceInfo
from gputune.errors import (
    ConfigurationError,
    DuplicateParameterError,
    MalformedConstraintError,
    UnresolvedModifierError,
)
from gputune.space import (
    Configuration,
    ModifierKind,
    ParameterSpace,
    Setting,
)


class TestSetting:
    """Tests for Setting rendering."""

    def test_define(self) -> None:
        """A setting renders as a preprocessor definition line."""
        assert Setting("TS", 16).define() == "#define TS 16\n"

    def test_config_and_database_strings(self) -> None:
        """Config and database strings use the name and value."""
        setting = Setting("WPT", 4)
        assert setting.config_string() == "WPT 4"
        assert setting.database_string() == '{"WPT",4}'


class TestConfiguration:
    """Tests for the immutable Configuration value."""

    def test_defines_in_order(self) -> None:
        """All settings are rendered in declaration order."""
        config = Configuration.from_pairs([("A", 1), ("B", 2)])
        assert config.defines() == "#define A 1\n#define B 2\n"

    def test_differences(self) -> None:
        """Differences count positions with unequal values."""
        a = Configuration.from_pairs([("A", 1), ("B", 2), ("C", 3)])
        b = Configuration.from_pairs([("A", 1), ("B", 5), ("C", 4)])
        assert a.differences(b) == 2
        assert a.differences(a) == 0

    def test_is_hashable_and_frozen(self) -> None:
        """Configurations can be used as dict keys and cannot be mutated."""
        config = Configuration.from_pairs([("A", 1)])
        assert {config: 1}[Configuration.from_pairs([("A", 1)])] == 1
        with pytest.raises(AttributeError):
            config.settings = ()  # type: ignore[misc]

    def test_lookup(self) -> None:
        """Values can be looked up by name."""
        config = Configuration.from_pairs([("A", 1), ("B", 2)])
        assert config.get("B") == 2
        assert config.get("missing") is None
        assert config.to_dict() == {"A": 1, "B": 2}


class TestAddParameter:
    """Tests for parameter declaration."""

    def test_duplicate_name_rejected(self) -> None:
        """Declaring the same name twice fails on the second call."""
        space = ParameterSpace()
        space.add_parameter("X", [1, 2])
        with pytest.raises(DuplicateParameterError):
            space.add_parameter("X", [3])

    def test_duplicate_is_configuration_error(self) -> None:
        """Duplicate declarations belong to the configuration-error family."""
        space = ParameterSpace()
        space.add_parameter("X", [1])
        with pytest.raises(ConfigurationError):
            space.add_parameter("X", [1])

    def test_empty_values_rejected(self) -> None:
        """A parameter without candidates cannot be declared."""
        with pytest.raises(ConfigurationError):
            ParameterSpace().add_parameter("X", [])

    def test_negative_values_rejected(self) -> None:
        """Candidate values are unsigned."""
        with pytest.raises(ConfigurationError):
            ParameterSpace().add_parameter("X", [1, -2])


class TestEnumerate:
    """Tests for configuration enumeration."""

    def test_no_parameters_yields_single_empty_configuration(self) -> None:
        """A kernel without parameters runs exactly once, unmodified."""
        configs = ParameterSpace().enumerate_configurations()
        assert configs == [Configuration()]

    @pytest.mark.parametrize("sizes", [[3], [2, 3], [2, 2, 4], [1, 5, 1, 2]])
    def test_product_size(self, sizes: list[int]) -> None:
        """Without constraints the result is the full Cartesian product."""
        space = ParameterSpace()
        for i, size in enumerate(sizes):
            space.add_parameter(f"P{i}", list(range(1, size + 1)))

        configs = space.enumerate_configurations()

        expected = 1
        for size in sizes:
            expected *= size
        assert len(configs) == expected
        for config in configs:
            assert config.names == tuple(f"P{i}" for i in range(len(sizes)))

    def test_lexicographic_order(self) -> None:
        """Earlier parameters vary slowest, values follow declared order."""
        space = ParameterSpace()
        space.add_parameter("A", [2, 1])
        space.add_parameter("B", [10, 20])
        values = [c.values for c in space.enumerate_configurations()]
        assert values == [(2, 10), (2, 20), (1, 10), (1, 20)]

    def test_always_false_constraint_yields_nothing(self) -> None:
        """A constraint that never holds removes every configuration."""
        space = ParameterSpace()
        space.add_parameter("A", [1, 2, 3])
        space.add_constraint(lambda v: False, ["A"])
        assert space.enumerate_configurations() == []

    def test_always_true_constraint_is_noop(self) -> None:
        """A constraint that always holds changes nothing."""
        space = ParameterSpace()
        space.add_parameter("A", [1, 2, 3])
        space.add_parameter("B", [4, 5])
        before = space.enumerate_configurations()
        space.add_constraint(lambda v: True, ["A", "B"])
        assert space.enumerate_configurations() == before

    def test_constraint_values_follow_given_name_order(self) -> None:
        """Constraint values arrive in the order names were supplied."""
        space = ParameterSpace()
        space.add_parameter("TS1", [8, 16])
        space.add_parameter("TS2", [8, 16])
        space.add_constraint(lambda v: v[0] <= v[1], ["TS2", "TS1"])

        values = [c.values for c in space.enumerate_configurations()]

        assert values == [(8, 8), (16, 8), (16, 16)]
        assert (8, 16) not in values

    def test_constraint_with_unknown_name(self) -> None:
        """A constraint naming an undeclared parameter is malformed."""
        space = ParameterSpace()
        space.add_parameter("A", [1])
        space.add_constraint(lambda v: True, ["A", "B"])
        with pytest.raises(MalformedConstraintError):
            space.enumerate_configurations()

    def test_device_rejects_large_local_size(self) -> None:
        """Configurations whose local size exceeds the device are dropped."""
        space = ParameterSpace()
        space.add_parameter("WG", [64, 256, 2048])
        space.add_thread_size_modifier(("WG",), ModifierKind.LOCAL_MUL)
        configs = space.enumerate_configurations((4096,), (1,), DeviceInfo())
        assert [c.values for c in configs] == [(64,), (256,)]

    def test_device_rejects_local_memory(self) -> None:
        """Configurations whose estimated local memory does not fit are dropped."""
        space = ParameterSpace()
        space.add_parameter("TS", [16, 32, 64])
        space.set_local_memory_estimator(lambda v: v[0] * v[0] * 4, ["TS"])
        device = DeviceInfo(local_memory_bytes=8 * 1024)
        configs = space.enumerate_configurations((1,), (1,), device)
        assert [c.values for c in configs] == [(16,), (32,)]

    def test_division_by_zero_value_is_invalid(self) -> None:
        """A divide modifier bound to zero marks the configuration invalid."""
        space = ParameterSpace()
        space.add_parameter("D", [0, 2])
        space.add_thread_size_modifier(("D",), ModifierKind.GLOBAL_DIV)
        configs = space.enumerate_configurations((64,), (1,))
        assert [c.values for c in configs] == [(2,)]


class TestComputeRanges:
    """Tests for thread-size modifiers."""

    def test_modifiers_apply_in_order(self) -> None:
        """Multiply and divide modifiers combine per dimension."""
        space = ParameterSpace()
        space.add_parameter("TS", [16])
        space.add_parameter("WPT", [4])
        space.add_thread_size_modifier(("TS", "TS"), ModifierKind.LOCAL_MUL)
        space.add_thread_size_modifier(("WPT", ""), ModifierKind.GLOBAL_DIV)
        space.add_thread_size_modifier(("", "WPT"), ModifierKind.LOCAL_DIV)
        config = space.enumerate_configurations()[0]

        global_size, local_size = space.compute_ranges(config, (1024, 512), (1, 1))

        assert global_size == (256, 512)
        assert local_size == (16, 4)

    def test_missing_trailing_dimensions_unmodified(self) -> None:
        """A modifier shorter than the launch rank leaves later dimensions alone."""
        space = ParameterSpace()
        space.add_parameter("TS", [8])
        space.add_thread_size_modifier("TS", ModifierKind.GLOBAL_MUL)
        config = Configuration.from_pairs([("TS", 8)])
        assert space.compute_ranges(config, (2, 3), (1, 1)) == ((16, 3), (1, 1))

    def test_unresolved_modifier(self) -> None:
        """A modifier naming an unbound parameter is a fatal error."""
        space = ParameterSpace()
        space.add_parameter("TS", [8])
        space.add_thread_size_modifier(("NOPE",), ModifierKind.LOCAL_MUL)
        with pytest.raises(UnresolvedModifierError):
            space.enumerate_configurations()

    def test_dimension_mismatch(self) -> None:
        """Global and local sizes must have the same rank."""
        space = ParameterSpace()
        with pytest.raises(ConfigurationError):
            space.compute_ranges(Configuration(), (1, 1), (1,))
