"""
Module: budget_kernel.domain.allocation
Responsibility:
    Split a deficit, in integer minor units, across weighted source budgets
    using the largest-remainder (Hamilton) method.

Architecture position:
    Kernel > Domain -- pure calculation, zero I/O, no clock access.

Invariants enforced:
    - Conservation: the allocations sum exactly to the deficit whenever any
      source carries positive weight.  No unit is lost or created.
    - Boundedness: each allocation is floor(deficit * w / W) or that plus one.
    - Neutrality: a source with weight <= 0 always receives 0.
    - Determinism: ties on the fractional remainder are broken by input
      order, which callers fix by sorting sources on source_budget_id.

Remainders are compared as exact integer numerators
(``deficit * weight mod total``) so no floating-point rounding can reorder
them.

Usage:
    from budget_kernel.domain.allocation import allocate
    from budget_kernel.domain.dtos import WeightedSource

    allocate(12000, [WeightedSource(a, 70), WeightedSource(b, 30)])
    # -> (8400, 3600)
"""

from __future__ import annotations

from collections.abc import Sequence

from budget_kernel.domain.dtos import WeightedSource


def allocate(deficit_minor_units: int, sources: Sequence[WeightedSource]) -> tuple[int, ...]:
    """
    Allocate ``deficit_minor_units`` across ``sources`` by weight.

    Args:
        deficit_minor_units: Amount to cover, in minor units.  Values <= 0
            produce all-zero allocations.
        sources: Ordered sources; the result is aligned with this order.

    Returns:
        One non-negative integer per source.
    """
    allocations = [0] * len(sources)
    if deficit_minor_units <= 0:
        return tuple(allocations)

    total_weight = sum(s.weight for s in sources if s.weight > 0)
    if total_weight <= 0:
        return tuple(allocations)

    allocated = 0
    remainders: list[tuple[int, int]] = []  # (index, remainder numerator)
    for idx, source in enumerate(sources):
        if source.weight <= 0:
            continue
        base, remainder = divmod(deficit_minor_units * source.weight, total_weight)
        allocations[idx] = base
        allocated += base
        remainders.append((idx, remainder))

    leftover = deficit_minor_units - allocated

    # Stable sort: equal remainders keep input order
    remainders.sort(key=lambda item: item[1], reverse=True)
    while leftover > 0:
        for idx, _ in remainders:
            if leftover == 0:
                break
            allocations[idx] += 1
            leftover -= 1

    return tuple(allocations)
