"""
Unit tests for variable resolution.

Tests provider ordering, merge rules, override policy, provider failures,
file seeding and the compatibility pass.
"""

import json
from unittest.mock import patch

import pytest

from arborbuild.models import Variable, VariableSet
from arborbuild.validation import ConfigurationError, ProviderError
from arborbuild.variables import (
    StaticVariableProvider,
    VariableProvider,
    VariableResolver,
    WellKnownVariables,
    read_variable_file,
    seed_variables,
    sort_providers,
)


class FailingProvider(VariableProvider):
    order = 5

    async def provide(self, variables, context):
        raise RuntimeError("boom")


class RecordingProvider(VariableProvider):
    """Records the keys it saw and contributes one variable."""

    def __init__(self, order, key, value, seen):
        self.order = order
        self.key = key
        self.value = value
        self.seen = seen

    async def provide(self, variables, context):
        self.seen.append((self.key, sorted(variables.keys()), variables.is_frozen))
        return [Variable(self.key, self.value)]


@pytest.mark.unit
class TestVariableResolver:
    """Test cases for VariableResolver.resolve."""

    @pytest.mark.asyncio
    async def test_resolve_is_deterministic(self, build_context):
        """Resolving twice with the same inputs yields the same snapshot."""
        providers = [
            StaticVariableProvider([Variable("B", "2")], order=2),
            StaticVariableProvider([Variable("A", "1")], order=1),
        ]
        seed = VariableSet([Variable("Seed", "x")])

        first = await VariableResolver(build_context).resolve(providers, seed)
        second = await VariableResolver(build_context).resolve(providers, seed)

        assert first.to_dict() == second.to_dict()
        assert first.keys() == sorted(first.keys(), key=str.casefold)
        assert first.is_frozen

    @pytest.mark.asyncio
    async def test_re_resolving_unchanged_values_keeps_key_count(self, build_context):
        """A provider repeating known values, ignoring case, adds nothing."""
        providers = [StaticVariableProvider([Variable("Configuration", "Release")])]
        first = await VariableResolver(build_context).resolve(providers)

        repeat = [StaticVariableProvider([Variable("CONFIGURATION", "release")])]
        second = await VariableResolver(build_context).resolve(repeat, first.copy())

        assert len(second) == len(first)
        assert second.get_value("Configuration") == "Release"

    @pytest.mark.asyncio
    async def test_seed_is_not_mutated(self, build_context):
        """The seed is copied before providers contribute."""
        seed = VariableSet([Variable("Seed", "x")])
        await VariableResolver(build_context).resolve(
            [StaticVariableProvider([Variable("Added", "y")])], seed
        )

        assert "Added" not in seed
        assert len(seed) == 1

    @pytest.mark.asyncio
    async def test_providers_run_in_order_and_see_earlier_batches(self, build_context):
        """Each provider sees a frozen set holding every earlier batch."""
        seen = []
        providers = [
            RecordingProvider(10, "Late", "3", seen),
            RecordingProvider(-5, "Early", "1", seen),
            RecordingProvider(0, "Middle", "2", seen),
        ]

        await VariableResolver(build_context).resolve(providers)

        assert [key for key, _, _ in seen] == ["Early", "Middle", "Late"]
        assert seen[2][1] == ["Early", "Middle"]
        assert all(frozen for _, _, frozen in seen)

    def test_sort_providers_is_stable(self):
        """Equal orders keep registration order."""
        first = StaticVariableProvider([], order=1, name="first")
        second = StaticVariableProvider([], order=1, name="second")
        zeroth = StaticVariableProvider([], order=0, name="zeroth")

        assert [p.name for p in sort_providers([first, second, zeroth])] == ["zeroth", "first", "second"]

    @pytest.mark.asyncio
    async def test_conflict_keeps_first_value_without_override(self, build_context):
        """A later different value is ignored when overriding is disabled."""
        providers = [
            StaticVariableProvider([Variable("Key", "first")], order=1),
            StaticVariableProvider([Variable("key", "second")], order=2),
        ]

        resolved = await VariableResolver(build_context).resolve(providers)

        assert resolved.get_value("KEY") == "first"
        assert resolved["key"].key == "Key"

    @pytest.mark.asyncio
    async def test_conflict_overrides_when_enabled(self, build_context):
        """A later different value wins when overriding is enabled."""
        seed = VariableSet([Variable(WellKnownVariables.VARIABLE_OVERRIDE_ENABLED, "true")])
        providers = [
            StaticVariableProvider([Variable("Key", "first")], order=1),
            StaticVariableProvider([Variable("Key", "second")], order=2),
        ]

        resolved = await VariableResolver(build_context).resolve(providers, seed)

        assert resolved.get_value("Key") == "second"

    @pytest.mark.asyncio
    async def test_blank_existing_value_is_replaced(self, build_context):
        """A blank value is filled by a later non-blank one regardless of override."""
        seed = VariableSet([Variable("Key", "  ")])
        providers = [StaticVariableProvider([Variable("Key", "value")])]

        resolved = await VariableResolver(build_context).resolve(providers, seed)

        assert resolved.get_value("Key") == "value"

    @pytest.mark.asyncio
    async def test_blank_new_value_never_overrides(self, build_context):
        """Even with overriding enabled a blank value does not replace a real one."""
        seed = VariableSet([
            Variable(WellKnownVariables.VARIABLE_OVERRIDE_ENABLED, "true"),
            Variable("Key", "value"),
        ])
        providers = [StaticVariableProvider([Variable("Key", "")])]

        resolved = await VariableResolver(build_context).resolve(providers, seed)

        assert resolved.get_value("Key") == "value"

    @pytest.mark.asyncio
    async def test_provider_exception_aborts_resolution(self, build_context):
        """Any provider exception becomes a ProviderError carrying the cause."""
        providers = [StaticVariableProvider([Variable("A", "1")]), FailingProvider()]

        with pytest.raises(ProviderError) as exc_info:
            await VariableResolver(build_context).resolve(providers)

        assert exc_info.value.provider_name == "FailingProvider"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_empty_provider_list_returns_seed_with_aliases(self, build_context):
        """With no providers the seed is frozen after the compatibility pass."""
        seed = VariableSet([Variable("Arbor.Build.Foo", "bar")])

        resolved = await VariableResolver(build_context).resolve([], seed)

        assert resolved.get_value("Arbor.Build.Foo") == "bar"
        assert resolved.get_value("Arbor_Build_Foo") == "bar"


@pytest.mark.unit
class TestSeedVariables:
    """Test cases for seeding from the run context and variable files."""

    def test_user_file_wins_over_base_file(self, build_context, temp_dir):
        """The `.user` file is applied last."""
        (temp_dir / "arborbuild_environmentvariables.json").write_text(
            json.dumps({"Shared": "base", "OnlyBase": "1", "Flag": True, "Empty": None})
        )
        (temp_dir / "arborbuild_environmentvariables.json.user").write_text(
            json.dumps({"Shared": "user"})
        )

        seed = seed_variables(build_context)

        assert seed.get_value("Shared") == "user"
        assert seed.get_value("OnlyBase") == "1"
        assert seed.get_value("Flag") == "true"
        assert seed.get_value("Empty") == ""
        assert build_context.run_context.get("Shared") == "user"

    def test_file_source_can_be_disabled(self, build_context, temp_dir):
        """The file source flag set to false skips both files."""
        build_context.run_context.set(WellKnownVariables.VARIABLE_FILE_SOURCE_ENABLED, "false")
        (temp_dir / "arborbuild_environmentvariables.json").write_text(json.dumps({"Shared": "base"}))

        seed = seed_variables(build_context)

        assert "Shared" not in seed

    def test_nested_values_are_rejected(self, build_context, temp_dir):
        """Only flat scalar objects are accepted."""
        (temp_dir / "arborbuild_environmentvariables.json").write_text(json.dumps({"Nested": {"a": 1}}))

        with pytest.raises(ConfigurationError):
            seed_variables(build_context)

    def test_invalid_json_is_a_configuration_error(self, build_context, temp_dir):
        """Malformed files are reported as configuration errors."""
        (temp_dir / "arborbuild_environmentvariables.json").write_text("{not json")

        with pytest.raises(ConfigurationError):
            seed_variables(build_context)

    def test_blank_variable_name_is_a_configuration_error(self, build_context, temp_dir):
        """A blank or whitespace key is rejected before it reaches the run context."""
        (temp_dir / "arborbuild_environmentvariables.json").write_text(json.dumps({"  ": "x"}))

        with pytest.raises(ConfigurationError, match="blank variable name"):
            seed_variables(build_context)
        assert build_context.run_context.get("  ") is None

    def test_invalid_utf8_is_a_configuration_error(self, build_context, temp_dir):
        (temp_dir / "arborbuild_environmentvariables.json").write_bytes(b'{"A": "\xff\xfe"}')

        with pytest.raises(ConfigurationError) as exc_info:
            seed_variables(build_context)
        assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)

    def test_unreadable_file_is_a_configuration_error(self, temp_dir):
        path = temp_dir / "arborbuild_environmentvariables.json"
        path.write_text(json.dumps({"A": "1"}))

        with patch("builtins.open", side_effect=PermissionError("denied")):
            with pytest.raises(ConfigurationError, match="could not be read") as exc_info:
                read_variable_file(path)
        assert isinstance(exc_info.value.__cause__, PermissionError)
