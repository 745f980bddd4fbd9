import numpy
import pandas
import pytest

from macpp import (ConfigurationError, MarkedPointPattern, Partition,
                   PointPattern, ShapeMismatch, Window)


def test_subpattern_preserves_order(abb_pattern):
    sub = abb_pattern.subpattern('A')
    assert isinstance(sub, PointPattern)
    assert sub.n == 2
    assert len(sub) == 2
    numpy.testing.assert_array_equal(sub.coordinates(),
                                     [[1.0, 4.0], [2.0, 5.0]])
    assert sub.window is abb_pattern.window


def test_subpattern_is_case_sensitive(abb_pattern):
    assert abb_pattern.subpattern('a').n == 0


def test_empty_subpattern(abb_pattern):
    sub = abb_pattern.subpattern('C')
    assert sub.n == 0
    assert sub.coordinates().shape == (0, 2)


def test_labels_and_counts(abb_pattern):
    assert abb_pattern.labels() == ['A', 'B']
    counts = abb_pattern.counts()
    assert list(counts.index) == ['A', 'B']
    assert list(counts) == [2, 1]


def test_marks_compared_as_strings():
    pattern = MarkedPointPattern([0.1, 0.2], [0.1, 0.2], [1, 2],
                                 Window.rectangle((0, 1), (0, 1)))
    assert pattern.subpattern(1).n == 1
    assert pattern.subpattern('2').n == 1


def test_points_outside_window():
    with pytest.raises(ValueError):
        PointPattern([0.5, 2.0], [0.5, 0.5], Window.rectangle((0, 1), (0, 1)))


def test_length_mismatch():
    with pytest.raises(ShapeMismatch):
        PointPattern([0.5, 0.2], [0.5], Window.rectangle((0, 1), (0, 1)))
    with pytest.raises(ShapeMismatch):
        MarkedPointPattern([0.5, 0.2], [0.5, 0.1], ['A'],
                           Window.rectangle((0, 1), (0, 1)))


def test_coordinates_are_read_only(abb_pattern):
    with pytest.raises(ValueError):
        abb_pattern.x[0] = 3.0
    with pytest.raises(TypeError):
        abb_pattern.x = numpy.zeros(3)


def test_from_frame():
    frame = pandas.DataFrame({'lon': [0.1, 0.5, 0.9],
                              'lat': [0.2, 0.4, 0.6],
                              'genus': ['P', 'Y', 'Y']})
    pattern = MarkedPointPattern.from_frame(
        frame, Window.rectangle((0, 1), (0, 1)), x='lon', y='lat',
        marks='genus')
    assert pattern.n == 3
    assert pattern.subpattern('Y').n == 2
    assert pattern[0] == (0.1, 0.2, 'P')


def test_convex(small_marked):
    convex = small_marked.convex()
    assert convex.window.kind == 'polygonal'
    assert convex.window.area <= small_marked.window.area
    assert convex.n == small_marked.n


class TestPartition:

    def test_single_parent_recycled(self, small_marked):
        partition = Partition(small_marked, 'P', ['Y1', 'Y2'])
        assert partition.parent_labels == ('P', 'P')
        assert partition.parents[0].n == 4
        assert partition.parents[1].n == 4
        numpy.testing.assert_array_equal(partition.offspring_counts(),
                                         [12, 8])
        assert partition.parent_only_labels == ('P',)
        numpy.testing.assert_array_equal(partition.parent_only_counts, [4])
        assert partition.unrelated_labels == ('U1', 'U2')
        numpy.testing.assert_array_equal(partition.unrelated_counts, [6, 3])

    def test_parent_count_mismatch(self, small_marked):
        with pytest.raises(ConfigurationError):
            Partition(small_marked, ['P', 'U1'], ['Y1', 'Y2', 'U2'])

    def test_no_offspring(self, small_marked):
        with pytest.raises(ConfigurationError):
            Partition(small_marked, 'P', [])

    def test_parent_that_is_also_offspring(self, small_marked):
        partition = Partition(small_marked, ['P', 'Y1'], ['Y1', 'Y2'])
        assert partition.parent_only_labels == ('P',)
        assert partition.parents[1].n == 12
        assert partition.unrelated_labels == ('U1', 'U2')

    def test_no_unrelated(self, clustered):
        partition = Partition(clustered, 'P', 'Y')
        assert partition.unrelated_labels == ()
        assert partition.unrelated_counts.shape == (0,)
