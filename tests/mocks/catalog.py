"""Small tweak catalog exercising overlaps, fan-out, services and power."""

from cleanforge.snapshot.models import STOPPED, ConfigValue, Coordinate
from cleanforge.tuning.catalog import GameProfile, Mutation, ServiceChange, TweakCatalog, TweakDefinition

BALANCED = "381b4222-f694-41f0-9685-ff5bb260df2e"
HIGH_PERFORMANCE = "8c5e7fda-e8bf-4a96-9a85-a6e23a8c635c"

X = Coordinate("HKCU", r"Software\CleanForgeTest", "Shared")
M1 = Coordinate("HKCU", r"Software\CleanForgeTest", "First")
M2 = Coordinate("HKLM", r"SOFTWARE\CleanForgeTest", "Second")
M3 = Coordinate("HKCU", r"Software\CleanForgeTest\Nested", "Third")
INTERFACES = Coordinate("HKLM", r"SYSTEM\Tcpip\Interfaces", "TCPNoDelay")


def _tweak(tweak_id, mutations=(), **kwargs):
    return TweakDefinition(tweak_id, tweak_id.upper(), f"test tweak {tweak_id}", "test", mutations=mutations, **kwargs)


def make_catalog() -> TweakCatalog:
    tweaks = [
        _tweak("A", [Mutation(X, ConfigValue.int32(1))]),
        _tweak("B", [Mutation(X, ConfigValue.int32(2))]),
        _tweak("three", [
            Mutation(M1, ConfigValue.string("one")),
            Mutation(M2, ConfigValue.int32(2)),
            Mutation(M3, ConfigValue.int64(3)),
        ]),
        _tweak("nagle", [Mutation(INTERFACES, ConfigValue.int32(1), fan_out=True)]),
        _tweak("stop_sysmain", services=[ServiceChange("SysMain", run_state=STOPPED, start_type="disabled")]),
        _tweak("power", power_plan=HIGH_PERFORMANCE),
    ]
    profiles = [GameProfile("both", "Both", "A then B", ["A", "B"])]
    return TweakCatalog("test", tweaks, profiles)
