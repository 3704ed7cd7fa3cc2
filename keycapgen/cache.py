"""
In-memory cache for generated keycap geometry.

Generating a keycap (and especially hollowing it with booleans) is the
expensive part of evaluating a scene, so meshes are memoised by the
parameters that change their shape. Colour and placement are not part of
the key: two keycaps that differ only in colour share one entry.

Each evaluator owns two caches: a small FIFO-bounded one for preview
geometry and an unbounded one for export geometry. Stored meshes are clones
and every read returns a fresh clone, so callers may mutate what they get.

Usage::

    cache = GeometryCache(max_entries=20)
    key = CacheKey.from_params(params)
    mesh = cache.get(key)
    if mesh is None:
        mesh = generator.generate(params)
        cache.put(key, mesh)
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional, Tuple

from .mesh import Mesh
from .params import KeycapParams

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheKey:
    """Shape-affecting keycap parameters, after clamping and defaults.

    Attributes:
        emboss: ``(text, font_size, depth)`` when a legend is embossed,
            otherwise ``None``. Emboss colour is not included.
    """

    profile: str
    size: str
    top_radius: float
    wall_thickness: float
    dish_depth: float
    height: float
    has_stem: bool
    emboss: Optional[Tuple[str, float, float]] = None

    @classmethod
    def from_params(cls, params):
        if not isinstance(params, KeycapParams):
            params = KeycapParams.from_dict(params)
        p = params.clamped()
        emboss = None
        if p.emboss.active:
            emboss = (p.emboss.text.strip(), p.emboss.font_size, p.emboss.depth)
        return cls(
            profile=p.profile,
            size=p.size,
            top_radius=p.top_radius,
            wall_thickness=p.wall_thickness,
            dish_depth=p.effective_dish_depth,
            height=p.effective_height,
            has_stem=p.has_stem,
            emboss=emboss,
        )


class GeometryCache:
    """
    Mapping from ``CacheKey`` to a private mesh copy.

    When ``max_entries`` is set, inserting beyond the bound evicts the
    oldest inserted entry (first in, first out; reads do not refresh).
    """

    def __init__(self, max_entries: Optional[int] = None, name: str = 'geometry'):
        self.max_entries = max_entries
        self.name = name
        self._entries: "OrderedDict[CacheKey, Mesh]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __len__(self):
        return len(self._entries)

    def __contains__(self, key):
        return key in self._entries

    def get(self, key: CacheKey) -> Optional[Mesh]:
        mesh = self._entries.get(key)
        if mesh is None:
            self.misses += 1
            logger.debug("%s cache miss: %s", self.name, key)
            return None
        self.hits += 1
        logger.debug("%s cache hit: %s", self.name, key)
        return mesh.copy()

    def put(self, key: CacheKey, mesh: Mesh) -> None:
        self._entries[key] = mesh.copy()
        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("%s cache evicted: %s", self.name, evicted)

    def get_or_create(self, key, factory):
        """Return a cached copy, or build with ``factory()``, store and return it."""
        mesh = self.get(key)
        if mesh is None:
            mesh = factory()
            self.put(key, mesh)
        return mesh

    def clear(self):
        if self._entries:
            logger.info("Cleared %d %s cache entries", len(self._entries), self.name)
        self._entries.clear()
