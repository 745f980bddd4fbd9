import numpy
import pytest

from macpp import InsufficientData, ShapeMismatch, Window
from macpp.kernels import (JITTER_FACTOR, bandwidth_sample, gaussian_kernel,
                           initial_bandwidth, kernel_logsum,
                           kernel_mass_inside)

RTOL = 1e-10


@pytest.fixture
def points():
    rng = numpy.random.default_rng(3)
    return rng.uniform(size=(15, 2)), rng.uniform(size=(5, 2))


def naive_logsum(offspring, parents, h):
    total = 0.0
    for y in offspring:
        d = numpy.hypot(*(parents - y).T)
        total += numpy.log(numpy.sum(gaussian_kernel(d, h)))
    return total


def test_gaussian_kernel_normalization():
    from scipy import stats
    d = numpy.array([0.0, 0.4, 1.3])
    numpy.testing.assert_allclose(gaussian_kernel(d, 0.7, dim=1),
                                  stats.norm.pdf(d, scale=0.7), rtol=RTOL)
    numpy.testing.assert_allclose(
        numpy.log(gaussian_kernel(d, 0.7)),
        [kernel_logsum([x], [0.0], [0.0], [0.0], 0.7) for x in d],
        rtol=RTOL)


class TestKernelLogsum:

    def test_single_pair(self):
        h, d = 0.3, 0.5
        expected = -numpy.log(2.0 * numpy.pi * h * h) - d * d / (2.0 * h * h)
        assert kernel_logsum([d], [0.0], [0.0], [0.0], h) == pytest.approx(
            expected, rel=RTOL)

    def test_matches_naive_sum(self, points):
        offspring, parents = points
        value = kernel_logsum(offspring[:, 0], offspring[:, 1],
                              parents[:, 0], parents[:, 1], 0.2)
        assert value == pytest.approx(naive_logsum(offspring, parents, 0.2),
                                      rel=RTOL)

    def test_no_underflow(self):
        # The kernel value underflows to zero, its logarithm does not
        h, d = 0.01, 1.0
        expected = -numpy.log(2.0 * numpy.pi * h * h) - d * d / (2.0 * h * h)
        value = kernel_logsum([d], [0.0], [0.0], [0.0], h)
        assert numpy.isfinite(value)
        assert value == pytest.approx(expected, rel=RTOL)

    def test_offspring_order_invariant(self, points):
        offspring, parents = points
        shuffled = offspring[::-1]
        a = kernel_logsum(offspring[:, 0], offspring[:, 1],
                          parents[:, 0], parents[:, 1], 0.1)
        b = kernel_logsum(shuffled[:, 0], shuffled[:, 1],
                          parents[:, 0], parents[:, 1], 0.1)
        assert a == pytest.approx(b, rel=RTOL)

    def test_nondecreasing_in_parents(self, points):
        offspring, parents = points
        values = [kernel_logsum(offspring[:, 0], offspring[:, 1],
                                parents[:k, 0], parents[:k, 1], 0.15)
                  for k in range(1, len(parents) + 1)]
        assert numpy.all(numpy.diff(values) >= 0.0)

    def test_empty_sets(self, points):
        offspring, parents = points
        assert kernel_logsum([], [], parents[:, 0], parents[:, 1], 0.1) == 0.0
        assert kernel_logsum(offspring[:, 0], offspring[:, 1], [], [],
                             0.1) == 0.0

    def test_chunking(self, points, monkeypatch):
        offspring, parents = points
        whole = kernel_logsum(offspring[:, 0], offspring[:, 1],
                              parents[:, 0], parents[:, 1], 0.1)
        monkeypatch.setattr('macpp.kernels.CHUNKSIZE', 4)
        chunked = kernel_logsum(offspring[:, 0], offspring[:, 1],
                                parents[:, 0], parents[:, 1], 0.1)
        assert chunked == pytest.approx(whole, rel=RTOL)

    def test_invalid_bandwidth(self):
        with pytest.raises(ValueError):
            kernel_logsum([0.0], [0.0], [0.0], [0.0], 0.0)

    def test_shape_mismatch(self):
        with pytest.raises(ShapeMismatch):
            kernel_logsum([0.0, 1.0], [0.0], [0.0], [0.0], 0.1)


class TestKernelMassInside:

    def test_far_from_boundary(self, unit_square):
        mass = kernel_mass_inside([0.5, 0.5], [0.4, 0.6], 0.01, unit_square,
                                  50, rng=0)
        assert mass == 2.0

    def test_corner_converges(self, unit_square):
        # A quarter of the kernel mass at a corner lies inside
        mass1 = kernel_mass_inside([0.0], [0.0], 0.1, unit_square, 200000,
                                   rng=1)
        mass2 = kernel_mass_inside([0.0], [0.0], 0.1, unit_square, 200000,
                                   rng=2)
        assert mass1 == pytest.approx(0.25, abs=0.01)
        assert mass1 == pytest.approx(mass2, abs=0.01)

    def test_fresh_draws(self, unit_square):
        rng = numpy.random.default_rng(5)
        masses = {kernel_mass_inside([0.0], [0.5], 0.2, unit_square, 100,
                                     rng=rng)
                  for __ in range(10)}
        assert len(masses) > 1

    def test_polygonal_window(self, triangle):
        mass = kernel_mass_inside([5.0], [0.0], 0.5, triangle, 100000,
                                  rng=4)
        assert mass == pytest.approx(0.5, abs=0.02)

    def test_empty_parents(self, unit_square):
        assert kernel_mass_inside([], [], 0.1, unit_square, 10, rng=0) == 0.0

    def test_bounded_by_parent_count(self, unit_square):
        mass = kernel_mass_inside([0.1, 0.9, 0.5], [0.1, 0.2, 0.95], 0.3,
                                  unit_square, 100, rng=0)
        assert 0.0 <= mass <= 3.0


class TestBandwidth:

    def test_sample(self):
        sample = bandwidth_sample([3.0, 10.0], [4.0, 0.0], [0.0, 10.0],
                                  [0.0, 1.0])
        numpy.testing.assert_allclose(sample,
                                      numpy.sqrt(2.0 / numpy.pi) *
                                      numpy.array([5.0, 1.0]))

    def test_recovers_scale(self):
        rng = numpy.random.default_rng(11)
        h = 0.05
        parents = numpy.array([[0.0, 0.0], [10.0, 10.0]])
        k = rng.integers(2, size=4000)
        offspring = parents[k] + h * rng.standard_normal((4000, 2))
        estimate = initial_bandwidth(offspring[:, 0], offspring[:, 1],
                                     parents[:, 0], parents[:, 1])
        assert estimate == pytest.approx(h, rel=0.05)

    def test_jitter(self):
        args = ([1.0, 2.0], [1.0, 2.0], [0.0], [0.0])
        h = initial_bandwidth(*args)
        rng = numpy.random.default_rng(0)
        jittered = numpy.array([initial_bandwidth(*args, jitter=True, rng=rng)
                                for __ in range(2000)])
        assert numpy.all(numpy.abs(jittered - h) <= JITTER_FACTOR * h)
        assert numpy.mean(jittered) == pytest.approx(h, rel=2e-3)
        assert numpy.std(jittered) > 0.0

    def test_empty_offspring(self):
        with pytest.raises(InsufficientData):
            initial_bandwidth([], [], [0.0], [0.0])

    def test_empty_parents(self):
        with pytest.raises(InsufficientData):
            initial_bandwidth([1.0], [1.0], [], [])

    def test_coincident_points(self):
        with pytest.raises(InsufficientData):
            initial_bandwidth([1.0], [1.0], [1.0], [1.0])
