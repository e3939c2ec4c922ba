from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional


class CacheFamily(str, Enum):
    CORE = "core"
    RUNTIME = "runtime"
    IMAGES = "images"
    MEDIA = "media"
    OFFLINE = "offline"
    META = "meta"

    @property
    def versioned(self) -> bool:
        return self not in (CacheFamily.OFFLINE, CacheFamily.META)


# Search order for lookups that are not scoped to one generation.
LOOKUP_ORDER: tuple[CacheFamily, ...] = (
    CacheFamily.CORE,
    CacheFamily.RUNTIME,
    CacheFamily.IMAGES,
    CacheFamily.MEDIA,
    CacheFamily.OFFLINE,
)


@dataclass(frozen=True, slots=True)
class GenerationId:
    family: CacheFamily
    name: str


@dataclass(frozen=True, slots=True)
class GenerationNaming:
    """
    Maps cache families to concrete generation names for one build.

    Versioned families are rendered as ``<family>-v<version>``. The offline-download
    and meta generations use stable names so their content survives build bumps.
    """

    version: str
    offline_name: str = "album-offline-v1"
    meta_name: str = "album-meta-v1"

    def name_for(self, family: CacheFamily) -> str:
        if family is CacheFamily.OFFLINE:
            return self.offline_name
        if family is CacheFamily.META:
            return self.meta_name
        return f"{family.value}-v{self.version}"

    def generation(self, family: CacheFamily) -> GenerationId:
        return GenerationId(family=family, name=self.name_for(family))

    def current(self) -> dict[str, CacheFamily]:
        return {self.name_for(family): family for family in CacheFamily}

    def family_of(self, name: str) -> Optional[CacheFamily]:
        """Return the family a generation name belongs to, for any build version."""
        current = self.current()
        if name in current:
            return current[name]
        for family in CacheFamily:
            if family.versioned and name.startswith(f"{family.value}-v"):
                return family
        return None

    def stale(self, names: Iterable[str]) -> list[str]:
        """Names that are not a live generation of this build: older versions and unknown names."""
        current = self.current()
        return [name for name in names if name not in current]
