from __future__ import annotations

from typing import Callable


Workload = Callable[[int], int]


def recursive_fib(index: int) -> int:
    """fib(0) = fib(1) = 1, computed by naive double recursion.

    Exponential on purpose: this is the simulated slow job.
    """

    if index < 2:
        return 1
    return recursive_fib(index - 1) + recursive_fib(index - 2)


def iterative_fib(index: int) -> int:
    """Same sequence as recursive_fib, in linear time."""

    a, b = 1, 1
    for _ in range(index):
        a, b = b, a + b
    return a


WORKLOADS: dict[str, Workload] = {
    "recursive": recursive_fib,
    "iterative": iterative_fib,
}


def get_workload(name: str) -> Workload:
    try:
        return WORKLOADS[name]
    except KeyError:
        raise ValueError(f"Unknown workload: {name}") from None
