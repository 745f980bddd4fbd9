#!/usr/bin/env python

"""File: simulate.py
Module to simulate marked point patterns from the parent and offspring model,
for testing samplers on data with known parameters.

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

import numpy

from .errors import InsufficientData
from .pointpatterns import MarkedPointPattern
from .utils import coordinate_arrays, random_generator
from .windows import Window

# Give up rejection sampling after this many rounds
MAXROUNDS = 1000


def _fill(window, n, draw):
    """
    Collect exactly n points inside a window from repeated batches of
    candidate points produced by draw(size)

    """
    xs, ys = [numpy.zeros((0,))], [numpy.zeros((0,))]
    left = n
    rounds = 0
    while left > 0:
        if rounds == MAXROUNDS:
            raise RuntimeError("failed to place {} points inside the window"
                               .format(n))
        rounds += 1
        x, y = draw(left)
        inside = window.contains_points(x, y).astype(bool)
        x, y = x[inside][:left], y[inside][:left]
        xs.append(x)
        ys.append(y)
        left -= x.size
    return numpy.concatenate(xs), numpy.concatenate(ys)


def uniform_points(window, n, rng=None):
    """
    Draw points uniformly inside a window

    :window: Window instance
    :n: number of points
    :rng: Generator or seed
    :returns: tuple (x, y) of arrays of length n

    """
    rng = random_generator(rng)
    xmin, ymin, xmax, ymax = window.bounds
    area_factor = (xmax - xmin) * (ymax - ymin) / window.area

    def draw(size):
        ndraw = int(numpy.ceil(area_factor * size))
        return (rng.uniform(low=xmin, high=xmax, size=ndraw),
                rng.uniform(low=ymin, high=ymax, size=ndraw))

    return _fill(window, n, draw)


def gaussian_offspring(cx, cy, n, bandwidth, window, rng=None):
    """
    Draw offspring points as Gaussian displacements of parent points

    Each offspring point is placed around a parent chosen uniformly at random,
    displaced by independent normal draws with standard deviation `bandwidth`
    in each coordinate. Points falling outside the window are discarded and
    redrawn until `n` points are inside.

    :cx, cy: coordinates of the parent points
    :n: number of offspring points
    :bandwidth: standard deviation of the displacements
    :window: Window instance
    :rng: Generator or seed
    :returns: tuple (x, y) of arrays of length n

    """
    cx, cy = coordinate_arrays(cx, cy)
    if cx.size == 0:
        raise InsufficientData("offspring cannot be drawn without parents")
    rng = random_generator(rng)

    def draw(size):
        k = rng.integers(cx.size, size=size)
        return (cx[k] + bandwidth * rng.standard_normal(size),
                cy[k] + bandwidth * rng.standard_normal(size))

    return _fill(window, n, draw)


def simulate_marked_pattern(window, parents, offspring, unrelated=None,
                            rng=None):
    """
    Simulate a marked point pattern with parent, offspring and unrelated types

    Parameters
    ----------
    window : Window or sequence
        Observation window.
    parents : dict
        Mapping from parent label to either an integer (number of parent
        points, placed uniformly) or an n-by-2 array of parent coordinates.
    offspring : dict
        Mapping from offspring label to a tuple (parent_label, n, bandwidth).
    unrelated : dict, optional
        Mapping from unrelated label to a number of uniformly placed points.
    rng : Generator or int or None, optional
        Source of randomness.

    Returns
    -------
    MarkedPointPattern
        The simulated pattern.

    """
    if not isinstance(window, Window):
        window = Window(window)
    rng = random_generator(rng)
    if unrelated is None:
        unrelated = {}

    xs, ys, marks = [], [], []

    def add(label, x, y):
        xs.append(x)
        ys.append(y)
        marks.extend([label] * len(x))

    parent_points = {}
    for (label, value) in parents.items():
        if numpy.ndim(value) == 0:
            x, y = uniform_points(window, int(value), rng=rng)
        else:
            value = numpy.asarray(value, dtype=float)
            x, y = value[:, 0], value[:, 1]
        parent_points[label] = (x, y)
        add(label, x, y)

    for (label, (parent_label, n, bandwidth)) in offspring.items():
        cx, cy = parent_points[parent_label]
        add(label, *gaussian_offspring(cx, cy, n, bandwidth, window, rng=rng))

    for (label, n) in unrelated.items():
        add(label, *uniform_points(window, n, rng=rng))

    return MarkedPointPattern(numpy.concatenate(xs), numpy.concatenate(ys),
                              marks, window)
