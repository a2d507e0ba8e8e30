"""
Property-based tests for the largest-remainder allocator.

Properties:
- Exactness: allocations sum to the deficit whenever any weight is positive.
- Boundedness: each share is floor(d*w/W) or one more.
- Neutrality: weight <= 0 always receives 0.
- Determinism: identical inputs give identical outputs.
- Tie-breaking: among equal weights, earlier sources never get less.
"""

from uuid import UUID

from hypothesis import given, settings
from hypothesis import strategies as st

from budget_kernel.domain.allocation import allocate
from budget_kernel.domain.dtos import WeightedSource

deficits = st.integers(min_value=0, max_value=10**12)
weight_lists = st.lists(st.integers(min_value=0, max_value=100), min_size=1, max_size=20)


def _sources(weights: list[int]) -> list[WeightedSource]:
    return [WeightedSource(UUID(int=i + 1), w) for i, w in enumerate(weights)]


@given(deficit=deficits, weights=weight_lists)
@settings(max_examples=300)
def test_allocations_sum_exactly(deficit, weights):
    result = allocate(deficit, _sources(weights))
    if sum(weights) > 0:
        assert sum(result) == deficit
    else:
        assert sum(result) == 0


@given(deficit=deficits, weights=weight_lists)
@settings(max_examples=300)
def test_each_share_is_floor_or_floor_plus_one(deficit, weights):
    total = sum(weights)
    result = allocate(deficit, _sources(weights))
    for weight, share in zip(weights, result):
        assert share >= 0
        if total == 0 or weight == 0:
            assert share == 0
            continue
        floor_share = deficit * weight // total
        assert floor_share <= share <= floor_share + 1


@given(
    deficit=deficits,
    weights=st.lists(st.integers(min_value=-100, max_value=0), min_size=1, max_size=10),
    positive=st.lists(st.integers(min_value=1, max_value=100), min_size=0, max_size=10),
)
def test_non_positive_weights_receive_nothing(deficit, weights, positive):
    sources = _sources(weights + positive)
    result = allocate(deficit, sources)
    assert all(share == 0 for share in result[: len(weights)])


@given(deficit=deficits, weights=weight_lists)
def test_deterministic(deficit, weights):
    sources = _sources(weights)
    assert allocate(deficit, sources) == allocate(deficit, list(sources))


@given(
    deficit=st.integers(min_value=1, max_value=10**9),
    weight=st.integers(min_value=1, max_value=100),
    count=st.integers(min_value=2, max_value=12),
)
def test_equal_weights_favor_input_order(deficit, weight, count):
    result = allocate(deficit, _sources([weight] * count))
    assert list(result) == sorted(result, reverse=True)
    assert max(result) - min(result) <= 1


@given(deficit=st.integers(max_value=0), weights=weight_lists)
def test_non_positive_deficit_allocates_nothing(deficit, weights):
    assert allocate(deficit, _sources(weights)) == tuple(0 for _ in weights)
