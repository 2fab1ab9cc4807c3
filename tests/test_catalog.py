"""Catalog lookup and the shipped tweak definitions."""

import pytest

from cleanforge.catalogs import CATALOG_BUILDERS, gaming
from cleanforge.protocol.errors import UnknownTweakError
from cleanforge.snapshot.models import ConfigValue, Coordinate
from cleanforge.tuning.catalog import GameProfile, Mutation, ServiceChange, TweakCatalog, TweakDefinition

from tests.mocks.catalog import X, make_catalog


class TestTweakCatalog:

    def test_get(self, catalog):
        assert catalog.get("A").mutations[0].coordinate == X

    def test_unknown_tweak(self, catalog):
        with pytest.raises(UnknownTweakError) as exc_info:
            catalog.get("missing")
        assert "missing" in str(exc_info.value)

    def test_resolve_keeps_order_and_drops_duplicates(self, catalog):
        assert [t.id for t in catalog.resolve(["B", "A", "B"])] == ["B", "A"]

    def test_resolve_raises_on_first_unknown(self, catalog):
        with pytest.raises(UnknownTweakError):
            catalog.resolve(["A", "nope"])

    def test_profile(self, catalog):
        assert catalog.profile("both").tweak_ids == ("A", "B")
        with pytest.raises(UnknownTweakError):
            catalog.profile("none")

    def test_read_only(self, catalog):
        with pytest.raises(TypeError):
            catalog.profiles["new"] = None

    def test_duplicate_ids_rejected(self):
        tweak = make_catalog().get("A")
        with pytest.raises(ValueError):
            TweakCatalog("dup", [tweak, tweak])

    def test_profile_with_unknown_tweak_rejected(self):
        tweak = make_catalog().get("A")
        with pytest.raises(ValueError):
            TweakCatalog("bad", [tweak], [GameProfile("p", "P", "", ["A", "ghost"])])

    def test_by_category(self, catalog):
        assert list(catalog.by_category()) == ["test"]
        assert len(catalog.by_category()["test"]) == len(catalog)


class TestDefinitions:

    def test_tweak_needs_a_change(self):
        with pytest.raises(ValueError):
            TweakDefinition("empty", "Empty", "", "misc")

    def test_absent_desired_value_rejected(self):
        with pytest.raises(ValueError):
            Mutation(X, ConfigValue.absent())

    def test_service_change_validation(self):
        with pytest.raises(ValueError):
            ServiceChange("SysMain", run_state="paused")
        with pytest.raises(ValueError):
            ServiceChange("SysMain")


class TestShippedCatalogs:

    @pytest.mark.parametrize("name", sorted(CATALOG_BUILDERS))
    def test_builds(self, name):
        catalog = CATALOG_BUILDERS[name]()
        assert catalog.name == name
        assert len(catalog) > 0

    @pytest.mark.parametrize("name", sorted(CATALOG_BUILDERS))
    def test_every_target_is_well_formed(self, name):
        for tweak in CATALOG_BUILDERS[name]():
            for mutation in tweak.mutations:
                assert isinstance(mutation.coordinate, Coordinate)
                assert mutation.coordinate.root in ("HKLM", "HKCU")
                assert mutation.coordinate.name

    def test_gaming_profiles(self):
        catalog = gaming.build_catalog()
        assert set(catalog.profiles) == {
            "competitive_fps", "open_world", "moba_strategy", "racing_sim", "casual", "nuclear",
        }
        nuclear = catalog.profile("nuclear")
        assert "high_performance_plan" not in nuclear.tweak_ids
        assert "ultimate_power_plan" in nuclear.tweak_ids

    def test_nagle_fans_out_over_interfaces(self):
        nagle = gaming.build_catalog().get("disable_nagle")
        assert all(m.fan_out for m in nagle.mutations)

    def test_sysmain_stops_the_service(self):
        tweak = gaming.build_catalog().get("disable_sysmain")
        assert [(s.service, s.run_state) for s in tweak.services] == [("SysMain", "stopped")]
