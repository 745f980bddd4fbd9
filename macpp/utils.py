#!/usr/bin/env python

"""File: utils.py
Module defining classes and functions that may come in handy throughout the
package

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

from .errors import ShapeMismatch


class AlmostImmutable(object):
    """
    A base class for "almost immutable" objects: instance attributes that have
    already been assigned cannot (easily) be reassigned or deleted, but
    creating new attributes is allowed.

    """

    def __setattr__(self, name, value):
        """
        Override the __setattr__() method to avoid member reassigment

        """
        if hasattr(self, name):
            raise TypeError("{} instances do not support attribute "
                            "reassignment".format(self.__class__.__name__))
        object.__setattr__(self, name, value)

    def __delattr__(self, name):
        """
        Override the __detattr__() method to avoid member deletion

        """
        raise TypeError("{} instances do not support attribute deletion"
                        .format(self.__class__.__name__))


def coordinate_arrays(x, y):
    """
    Convert x and y coordinates to float arrays of equal shape

    :x: array-like of x coordinates
    :y: array-like of y coordinates
    :returns: tuple (x, y) of float arrays
    :raises ShapeMismatch: if the arrays do not have the same shape

    """
    x = numpy.asarray(x, dtype=float)
    y = numpy.asarray(y, dtype=float)
    if x.shape != y.shape:
        raise ShapeMismatch("'x' and 'y' have different shapes: {} and {}"
                            .format(x.shape, y.shape))
    return x, y


def random_generator(rng=None):
    """
    Return a numpy random Generator

    :rng: None, an integer seed, or an existing Generator (returned as is)
    :returns: numpy.random.Generator instance

    """
    return numpy.random.default_rng(rng)
