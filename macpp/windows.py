#!/usr/bin/env python

"""File: windows.py
Module defining observation windows in the Euclidean plane, and the test
deciding which points lie inside them.

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
import shapely
from shapely import geometry

from .utils import AlmostImmutable, coordinate_arrays

WINDOW_KINDS = ('rectangle', 'polygonal')


class Window(AlmostImmutable):
    """
    Represent a rectangular or polygon-shaped observation window in the
    Euclidean plane

    Parameters
    ----------
    shell : Window or Polygon or sequence
        A `Window` instance, a shapely `Polygon`, or a sequence of coordinate
        tuples giving the ordered vertex ring of the window. No validation of
        self-intersection is performed.
    kind : str {'rectangle', 'polygonal'}, optional
        String selecting how points are tested for containment. Rectangles are
        tested by comparing coordinates to the bounds, polygons by
        a point-in-polygon test. If None, `shell`'s kind is used if it is
        a `Window`, else 'polygonal'.

    """

    def __init__(self, shell, kind=None):
        if isinstance(shell, Window):
            polygon = shell.polygon
            if kind is None:
                kind = shell.kind
        elif isinstance(shell, geometry.Polygon):
            polygon = shell
        else:
            polygon = geometry.Polygon(shell)

        if kind is None:
            kind = 'polygonal'
        if kind not in WINDOW_KINDS:
            raise ValueError("unknown window kind: {}".format(kind))

        if not polygon.area > 0.0:
            raise ValueError("{} instances must have strictly positive area"
                             .format(self.__class__.__name__))

        shapely.prepare(polygon)
        self.polygon = polygon
        self.kind = kind

        xmin, ymin, xmax, ymax = polygon.bounds
        self.xrange = (xmin, xmax)
        self.yrange = (ymin, ymax)
        self.area = polygon.area

    @classmethod
    def rectangle(cls, xrange, yrange):
        """
        Create a rectangular window

        :xrange: pair of x values giving the horizontal extent, in any order
        :yrange: pair of y values giving the vertical extent, in any order
        :returns: Window instance of kind 'rectangle'

        """
        xlb, xub = min(xrange), max(xrange)
        ylb, yub = min(yrange), max(yrange)
        return cls(geometry.box(xlb, ylb, xub, yub), kind='rectangle')

    @classmethod
    def polygon_from(cls, vertices):
        """
        Create a polygonal window from an ordered ring of vertices

        :vertices: sequence of (x, y) tuples, or an n-by-2 array
        :returns: Window instance of kind 'polygonal'

        """
        return cls(numpy.asarray(vertices, dtype=float), kind='polygonal')

    @classmethod
    def convex_hull(cls, x, y):
        """
        Create the polygonal window given by the convex hull of a set of points

        :x: array-like of x coordinates
        :y: array-like of y coordinates
        :returns: Window instance of kind 'polygonal'

        """
        x, y = coordinate_arrays(x, y)
        hull = geometry.MultiPoint(
            numpy.column_stack((x.ravel(), y.ravel()))).convex_hull
        if not isinstance(hull, geometry.Polygon):
            raise ValueError("the convex hull of fewer than three "
                             "non-collinear points is not a valid window")
        return cls(hull, kind='polygonal')

    @property
    def bounds(self):
        """
        The bounds (xmin, ymin, xmax, ymax) of the window

        """
        return self.polygon.bounds

    def diagonal(self):
        """
        Compute the length of the diagonal of the bounding box of the window

        Returns
        -------
        scalar
            Diagonal length.

        """
        (xmin, xmax), (ymin, ymax) = self.xrange, self.yrange
        return numpy.hypot(xmax - xmin, ymax - ymin)

    def contains_points(self, x, y):
        """
        Test which points lie inside the window

        Points on the boundary count as inside.

        Parameters
        ----------
        x, y : array-like
            Arrays of the same shape giving the coordinates of the points to
            test.

        Returns
        -------
        ndarray
            Integer array of the same shape as `x` and `y`, with 1 where the
            point is inside or on the boundary of the window, and 0 elsewhere.

        """
        x, y = coordinate_arrays(x, y)
        if self.kind == 'rectangle':
            (xlb, xub), (ylb, yub) = self.xrange, self.yrange
            inside = (x >= xlb) & (x <= xub) & (y >= ylb) & (y <= yub)
        else:
            inside = shapely.intersects_xy(self.polygon, x, y)
        return numpy.asarray(inside).astype(int)

    def __repr__(self):
        return "{}({!r}, kind={!r})".format(
            self.__class__.__name__, self.polygon.wkt, self.kind)


def check_within_window(x, y, window):
    """
    Test which points lie inside an observation window

    :x: array-like of x coordinates
    :y: array-like of y coordinates, same shape as `x`
    :window: Window instance, or any valid Window constructor argument
    :returns: integer array of the same shape as `x`, 1 for points inside or
              on the boundary of the window and 0 for points outside

    """
    if not isinstance(window, Window):
        window = Window(window)
    return window.contains_points(x, y)
