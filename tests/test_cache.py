"""Tests for the keycap geometry cache and its use by the evaluator."""

import numpy as np

from keycapgen.cache import CacheKey, GeometryCache
from keycapgen.evaluator import Evaluator
from keycapgen.generator import KeycapGenerator
from keycapgen.params import EmbossParams, KeycapParams, Mode
from keycapgen.primitives import create_primitive
from keycapgen.scene import create_keycap_node


class SpyGenerator(KeycapGenerator):
    """Counts how often geometry is actually generated."""

    def __init__(self, boolean_operator):
        super().__init__(boolean_operator)
        self.calls = 0

    def generate(self, params, quality=Mode.EXPORT):
        self.calls += 1
        return super().generate(params, quality)


def test_key_ignores_colour() -> None:
    a = CacheKey.from_params(KeycapParams(color='#ff0000'))
    b = CacheKey.from_params(KeycapParams(color='#00ff00'))

    assert a == b
    assert hash(a) == hash(b)


def test_key_resolves_defaults_and_clamps() -> None:
    """Unset and explicit default values produce the same key."""

    implicit = CacheKey.from_params(KeycapParams(top_radius=50))
    explicit = CacheKey.from_params(KeycapParams(top_radius=3.0, height=11.5, dish_depth=1.2))

    assert implicit == explicit


def test_key_includes_active_legend_only() -> None:
    plain = CacheKey.from_params(KeycapParams())
    disabled = CacheKey.from_params(KeycapParams(emboss=EmbossParams(enabled=False, text='A')))
    legend = CacheKey.from_params(KeycapParams(emboss=EmbossParams(enabled=True, text='A')))

    assert plain == disabled
    assert plain != legend


def test_colour_change_hits_the_cache(counting_operator) -> None:
    """Two keycaps differing only in colour generate geometry once."""

    spy = SpyGenerator(counting_operator)
    evaluator = Evaluator(boolean_operator=counting_operator, generator=spy)

    red = evaluator.evaluate(create_keycap_node({'color': '#ff0000'}), Mode.EXPORT)
    blue = evaluator.evaluate(create_keycap_node({'color': '#0000ff'}), Mode.EXPORT)

    assert spy.calls == 1
    assert counting_operator.calls == ['subtract', 'subtract', 'subtract']
    assert red.color == '#ff0000'
    assert blue.color == '#0000ff'


def test_shape_change_misses_the_cache(counting_operator) -> None:
    spy = SpyGenerator(counting_operator)
    evaluator = Evaluator(boolean_operator=counting_operator, generator=spy)

    evaluator.evaluate(create_keycap_node({'size': '1u'}), Mode.PREVIEW)
    evaluator.evaluate(create_keycap_node({'size': '2u'}), Mode.PREVIEW)

    assert spy.calls == 2


def test_preview_and_export_are_cached_separately(counting_operator) -> None:
    spy = SpyGenerator(counting_operator)
    evaluator = Evaluator(boolean_operator=counting_operator, generator=spy)
    node = create_keycap_node()

    evaluator.evaluate(node, Mode.PREVIEW)
    evaluator.evaluate(node, Mode.EXPORT)
    evaluator.evaluate(node, Mode.PREVIEW)

    assert spy.calls == 2
    assert len(evaluator.preview_cache) == 1
    assert len(evaluator.export_cache) == 1


def test_mutating_a_result_does_not_touch_the_cache() -> None:
    cache = GeometryCache()
    key = CacheKey.from_params(KeycapParams())
    cache.put(key, create_primitive('box'))

    first = cache.get(key)
    original = first.positions.copy()
    first.positions += 100.0
    first.color = '#000000'

    second = cache.get(key)
    assert np.array_equal(second.positions, original)
    assert second.color != '#000000'


def test_evaluator_results_are_independent(counting_operator) -> None:
    evaluator = Evaluator(boolean_operator=counting_operator)
    node = create_keycap_node()

    first = evaluator.evaluate(node, Mode.PREVIEW)
    first.apply_translation([50, 0, 0])
    second = evaluator.evaluate(node, Mode.PREVIEW)

    assert second.bounds[0][0] < 0


def test_fifo_eviction() -> None:
    """The oldest insert goes first; reading an entry does not refresh it."""

    cache = GeometryCache(max_entries=2)
    keys = [CacheKey.from_params(KeycapParams(size=size)) for size in ('1u', '2u', '7u')]
    box = create_primitive('box')

    cache.put(keys[0], box)
    cache.put(keys[1], box)
    assert cache.get(keys[0]) is not None
    cache.put(keys[2], box)

    assert keys[0] not in cache
    assert keys[1] in cache
    assert keys[2] in cache
    assert len(cache) == 2


def test_get_or_create_and_counters() -> None:
    cache = GeometryCache()
    key = CacheKey.from_params(KeycapParams())
    built = []

    def factory():
        built.append(1)
        return create_primitive('box')

    cache.get_or_create(key, factory)
    cache.get_or_create(key, factory)

    assert len(built) == 1
    assert cache.hits == 1
    assert cache.misses == 1

    cache.clear()
    assert len(cache) == 0
