#!/usr/bin/env python

"""File: pointpatterns.py
Module to represent marked point patterns in observation windows, and to split
them into the parent, offspring and unrelated sub-patterns of a model.

"""
# Copyright 2015 Daniel Wennberg
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from collections.abc import Sequence

import numpy
import pandas

from .errors import ConfigurationError, ShapeMismatch
from .utils import AlmostImmutable, coordinate_arrays
from .windows import Window


class PointPattern(AlmostImmutable, Sequence):
    """
    Represent a planar point pattern and its associated window

    Parameters
    ----------
    x, y : array-like
        One-dimensional arrays of the same length giving the coordinates of the
        points in the pattern. The order of the points is preserved.
    window : Window or sequence
        A `Window` instance or any other valid `Window` constructor argument,
        defining the set within which the point pattern takes values.
    check : bool, optional
        If True (default), a ValueError is raised if the window does not
        contain all points.

    """

    def __init__(self, x, y, window, check=True):
        if not isinstance(window, Window):
            window = Window(window)
        self.window = window

        x, y = coordinate_arrays(x, y)
        if x.ndim != 1:
            raise ShapeMismatch("coordinates must be one-dimensional")

        if check and not numpy.all(window.contains_points(x, y)):
            raise ValueError("Not all points in the pattern are contained "
                             "inside 'window'.")
        x, y = x.copy(), y.copy()
        x.setflags(write=False)
        y.setflags(write=False)
        self.x = x
        self.y = y

    # Implement abstract methods
    def __getitem__(self, index):
        if isinstance(index, slice):
            return list(zip(self.x[index], self.y[index]))
        return self.x[index], self.y[index]

    def __len__(self):
        return self.x.size

    @property
    def n(self):
        """
        The number of points in the pattern

        """
        return self.x.size

    def coordinates(self):
        """
        Return the points as an n-by-2 array of (x, y) rows

        """
        return numpy.column_stack((self.x, self.y))


class MarkedPointPattern(PointPattern):
    """
    Represent a planar point pattern where each point carries a categorical
    mark

    Marks are stored and compared as strings.

    Parameters
    ----------
    x, y : array-like
        Coordinates of the points, as for `PointPattern`.
    marks : array-like
        Sequence of the same length as `x` and `y`, giving the mark of each
        point.
    window : Window or sequence
        Observation window, as for `PointPattern`.
    check : bool, optional
        As for `PointPattern`.

    """

    def __init__(self, x, y, marks, window, check=True):
        PointPattern.__init__(self, x, y, window, check=check)
        marks = numpy.asarray(marks).astype(str)
        if marks.shape != self.x.shape:
            raise ShapeMismatch("'marks' must have one entry per point")
        marks.setflags(write=False)
        self.marks = marks

    @classmethod
    def from_frame(cls, frame, window, x='x', y='y', marks='marks',
                   check=True):
        """
        Create a marked point pattern from the columns of a DataFrame

        :frame: pandas DataFrame with one row per point
        :window: Window instance or valid Window constructor argument
        :x, y, marks: names of the columns holding coordinates and marks
        :check: passed to the constructor
        :returns: MarkedPointPattern instance

        """
        return cls(frame[x].to_numpy(), frame[y].to_numpy(),
                   frame[marks].to_numpy(), window, check=check)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return list(zip(self.x[index], self.y[index], self.marks[index]))
        return self.x[index], self.y[index], self.marks[index]

    def labels(self):
        """
        Return the distinct marks in order of first appearance

        """
        return [str(label) for label in pandas.unique(self.marks)]

    def counts(self):
        """
        Count the points carrying each distinct mark

        Returns
        -------
        Series
            Point counts indexed by mark, in order of first appearance.

        """
        return (pandas.Series(self.marks).value_counts()
                .reindex(self.labels()))

    def subpattern(self, label):
        """
        Extract the points carrying a given mark

        Parameters
        ----------
        label : str
            The mark to select. It is compared to the marks of the points as
            a string, exactly and case-sensitively.

        Returns
        -------
        PointPattern
            Unmarked pattern in the same window, holding the selected points
            in their original order. The pattern is empty if no point carries
            `label`.

        """
        index = self.marks == str(label)
        return PointPattern(self.x[index], self.y[index], self.window,
                            check=False)

    def with_window(self, window, check=True):
        """
        Return the same marked points in another observation window

        """
        return type(self)(self.x, self.y, self.marks, window, check=check)

    def convex(self):
        """
        Return the same marked points in the window given by their convex hull

        """
        return self.with_window(Window.convex_hull(self.x, self.y),
                                check=False)


def _as_labels(labels):
    if isinstance(labels, str):
        return [labels]
    return [str(label) for label in labels]


class Partition(AlmostImmutable):
    """
    Split a marked point pattern into the sub-patterns used by a parent and
    offspring model

    For each offspring type `j`, `parents[j]` and `offspring[j]` hold the
    parent and offspring points. Every mark that is neither a parent nor an
    offspring label defines an unrelated type.

    Parameters
    ----------
    pattern : MarkedPointPattern
        The full marked pattern.
    parent_labels : str or sequence
        Either a single parent label, shared by all offspring types, or one
        parent label per offspring type.
    offspring_labels : str or sequence
        The offspring labels, one per offspring type.

    """

    def __init__(self, pattern, parent_labels, offspring_labels):
        parent_labels = _as_labels(parent_labels)
        offspring_labels = _as_labels(offspring_labels)

        nj = len(offspring_labels)
        if nj == 0:
            raise ConfigurationError("at least one offspring label is "
                                     "required")
        if len(parent_labels) not in (1, nj):
            raise ConfigurationError(
                "number of parent labels must be one or the same as the "
                "number of offspring labels ({}), got {}"
                .format(nj, len(parent_labels)))
        if len(parent_labels) == 1:
            parent_labels = parent_labels * nj

        self.window = pattern.window
        self.parent_labels = tuple(parent_labels)
        self.offspring_labels = tuple(offspring_labels)

        self.parents = tuple(pattern.subpattern(label)
                             for label in parent_labels)
        self.offspring = tuple(pattern.subpattern(label)
                               for label in offspring_labels)

        offspring_set = set(offspring_labels)
        self.parent_only_labels = tuple(
            str(label) for label in pandas.unique(numpy.asarray(parent_labels))
            if label not in offspring_set)
        self.parent_only_counts = numpy.array(
            [pattern.subpattern(label).n
             for label in self.parent_only_labels], dtype=int)

        used = offspring_set.union(parent_labels)
        self.unrelated_labels = tuple(label for label in pattern.labels()
                                      if label not in used)
        self.unrelated = tuple(pattern.subpattern(label)
                               for label in self.unrelated_labels)
        self.unrelated_counts = numpy.array(
            [pp.n for pp in self.unrelated], dtype=int)

    def offspring_counts(self):
        """
        Return the number of points of each offspring type

        """
        return numpy.array([pp.n for pp in self.offspring], dtype=int)
