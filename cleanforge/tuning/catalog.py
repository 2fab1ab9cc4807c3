"""
TweakCatalog - immutable registry of named tweaks.

A tweak is an ordered list of value mutations, optionally followed by
service changes and a power-scheme switch. Catalogs are pure data and
never change at runtime.
"""

from collections import OrderedDict
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from ..protocol.errors import UnknownTweakError
from ..snapshot.models import RUN_STATES, ConfigValue, Coordinate


@dataclass(frozen=True)
class Mutation:
    """
    Desired value for one coordinate.

    With fan_out=True the mutation applies to the same value name under
    every child of coordinate.path (e.g. each network interface key).
    """
    coordinate: Coordinate
    desired: ConfigValue
    fan_out: bool = False

    def __post_init__(self):
        if self.desired.is_absent:
            raise ValueError(f"{self.coordinate}: desired value cannot be absent")


@dataclass(frozen=True)
class ServiceChange:
    """Desired run state and/or boot start type for a service."""
    service: str
    run_state: Optional[str] = None
    start_type: Optional[str] = None

    def __post_init__(self):
        if self.run_state is not None and self.run_state not in RUN_STATES:
            raise ValueError(f"{self.service}: invalid run state '{self.run_state}'")
        if self.run_state is None and self.start_type is None:
            raise ValueError(f"{self.service}: service change has nothing to do")


@dataclass(frozen=True)
class TweakDefinition:
    """One named optimization."""
    id: str
    display_name: str
    description: str
    category: str
    mutations: Tuple[Mutation, ...] = ()
    services: Tuple[ServiceChange, ...] = ()
    power_plan: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "mutations", tuple(self.mutations))
        object.__setattr__(self, "services", tuple(self.services))
        if not (self.mutations or self.services or self.power_plan):
            raise ValueError(f"tweak '{self.id}' defines no changes")


@dataclass(frozen=True)
class GameProfile:
    """A predefined set of tweaks applied as one batch."""
    id: str
    name: str
    description: str
    tweak_ids: Tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, "tweak_ids", tuple(self.tweak_ids))


class TweakCatalog:
    """Read-only lookup of tweaks (and profiles) by id."""

    def __init__(
        self,
        name: str,
        tweaks: Iterable[TweakDefinition],
        profiles: Iterable[GameProfile] = (),
    ):
        self.name = name

        by_id: "OrderedDict[str, TweakDefinition]" = OrderedDict()
        for tweak in tweaks:
            if tweak.id in by_id:
                raise ValueError(f"duplicate tweak id in catalog '{name}': {tweak.id}")
            by_id[tweak.id] = tweak
        self._tweaks: Mapping[str, TweakDefinition] = MappingProxyType(by_id)

        profile_map: "OrderedDict[str, GameProfile]" = OrderedDict()
        for profile in profiles:
            if profile.id in profile_map:
                raise ValueError(f"duplicate profile id in catalog '{name}': {profile.id}")
            unknown = [t for t in profile.tweak_ids if t not in by_id]
            if unknown:
                raise ValueError(f"profile '{profile.id}' references unknown tweaks: {', '.join(unknown)}")
            profile_map[profile.id] = profile
        self._profiles: Mapping[str, GameProfile] = MappingProxyType(profile_map)

    def get(self, tweak_id: str) -> TweakDefinition:
        try:
            return self._tweaks[tweak_id]
        except KeyError:
            raise UnknownTweakError(f"unknown tweak '{tweak_id}' in {self.name}") from None

    def resolve(self, tweak_ids: Iterable[str]) -> List[TweakDefinition]:
        """Resolve ids in order, dropping duplicates. Raises on unknown ids."""
        seen = set()
        resolved = []
        for tweak_id in tweak_ids:
            if tweak_id in seen:
                continue
            seen.add(tweak_id)
            resolved.append(self.get(tweak_id))
        return resolved

    def profile(self, profile_id: str) -> GameProfile:
        try:
            return self._profiles[profile_id]
        except KeyError:
            raise UnknownTweakError(f"unknown profile '{profile_id}' in {self.name}") from None

    @property
    def profiles(self) -> Mapping[str, GameProfile]:
        return self._profiles

    def ids(self) -> List[str]:
        return list(self._tweaks)

    def by_category(self) -> Dict[str, List[TweakDefinition]]:
        grouped: Dict[str, List[TweakDefinition]] = {}
        for tweak in self._tweaks.values():
            grouped.setdefault(tweak.category, []).append(tweak)
        return grouped

    def __contains__(self, tweak_id: object) -> bool:
        return tweak_id in self._tweaks

    def __iter__(self) -> Iterator[TweakDefinition]:
        return iter(self._tweaks.values())

    def __len__(self) -> int:
        return len(self._tweaks)
