"""Shared fixtures: stand-in boolean operators that need no mesh kernel."""

import pytest

from keycapgen.errors import BooleanOperationError
from keycapgen.mesh import concatenate


class CountingOperator:
    """Records every call; subtract/intersect keep ``a``, union concatenates."""

    def __init__(self):
        self.calls = []

    def union(self, a, b):
        self.calls.append('union')
        return concatenate([a, b])

    def subtract(self, a, b):
        self.calls.append('subtract')
        return a.copy()

    def intersect(self, a, b):
        self.calls.append('intersect')
        return a.copy()


class FailingOperator:
    """Every operation fails the way a real kernel does on bad input."""

    def __init__(self):
        self.calls = 0

    def _fail(self, a, b):
        self.calls += 1
        raise BooleanOperationError("degenerate input")

    union = subtract = intersect = _fail


@pytest.fixture
def counting_operator() -> CountingOperator:
    return CountingOperator()


@pytest.fixture
def failing_operator() -> FailingOperator:
    return FailingOperator()
