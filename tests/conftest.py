import numpy
import pytest

from macpp import MarkedPointPattern, Window
from macpp.simulate import simulate_marked_pattern

SQUARE_PARENTS = numpy.array([[0.25, 0.25], [0.75, 0.25],
                              [0.25, 0.75], [0.75, 0.75]])


@pytest.fixture
def unit_square():
    return Window.rectangle((0.0, 1.0), (0.0, 1.0))


@pytest.fixture
def triangle():
    return Window.polygon_from([(0.0, 0.0), (10.0, 0.0), (5.0, 10.0)])


@pytest.fixture
def clustered(unit_square):
    """Four parents on a square, 20 offspring at bandwidth 0.1."""
    return simulate_marked_pattern(
        unit_square,
        parents={'P': SQUARE_PARENTS},
        offspring={'Y': ('P', 20, 0.1)},
        rng=20240611,
    )


@pytest.fixture
def small_marked(unit_square):
    """Parents, two offspring types and two unrelated types."""
    return simulate_marked_pattern(
        unit_square,
        parents={'P': SQUARE_PARENTS},
        offspring={'Y1': ('P', 12, 0.08), 'Y2': ('P', 8, 0.05)},
        unrelated={'U1': 6, 'U2': 3},
        rng=7,
    )


@pytest.fixture
def abb_pattern():
    return MarkedPointPattern([1.0, 2.0, 3.0], [4.0, 5.0, 6.0],
                              ['A', 'A', 'B'],
                              Window.rectangle((0.0, 10.0), (0.0, 10.0)))
