#!/usr/bin/env python

"""File: kernels.py
Module defining the Gaussian kernel linking offspring points to parent points,
and the kernel statistics entering the likelihood of the parent and offspring
model: the kernel log-sum over offspring points, the Monte Carlo estimate of
the kernel mass inside the window, and the nearest-neighbor bandwidth
heuristic.

"""
# Copyright 2016 Daniel Wennberg
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
from scipy.spatial.distance import cdist
from scipy.special import logsumexp
from sklearn.neighbors import NearestNeighbors

from .errors import InsufficientData
from .utils import coordinate_arrays, random_generator
from .windows import check_within_window


_PI = numpy.pi
_2PI = 2.0 * _PI
_SQRT_2_PI = numpy.sqrt(2.0 / _PI)

# Offspring rows per block of pairwise distances
CHUNKSIZE = 2048

# Half-width of the uniform jitter, relative to the bandwidth
JITTER_FACTOR = 1.0 / 50.0


def _gaussian_form(u):
    return numpy.exp(-0.5 * (u * u))


def _gaussian_volume(dim):
    return _2PI ** (0.5 * dim)


def _gaussian_lognorm(bandwidth, dim):
    return numpy.log(_gaussian_volume(dim)) + dim * numpy.log(bandwidth)


def _check_bandwidth(bandwidth):
    if not bandwidth > 0.0:
        raise ValueError("'bandwidth' must be a positive number, got {}"
                         .format(bandwidth))


def _stack(x, y):
    x, y = coordinate_arrays(x, y)
    return numpy.column_stack((x.ravel(), y.ravel()))


def gaussian_kernel(distance, bandwidth, dim=2):
    """
    Evaluate the normalized isotropic Gaussian kernel

    :distance: array-like of distances from the kernel center
    :bandwidth: the standard deviation of each coordinate
    :dim: dimension of the space
    :returns: array of kernel densities, same shape as `distance`

    """
    _check_bandwidth(bandwidth)
    u = numpy.asarray(distance, dtype=float) / bandwidth
    return _gaussian_form(u) * numpy.exp(-_gaussian_lognorm(bandwidth, dim))


def kernel_logsum(yx, yy, cx, cy, bandwidth):
    """
    Compute the sum over offspring points of the log of the summed kernel
    densities from all parent points

    The result is sum_i log(sum_k K_h(Y_i - C_k)), where K_h is the bivariate
    isotropic Gaussian kernel with standard deviation h. The inner sums are
    computed with log-sum-exp, so kernel values far below the floating point
    range do not underflow to log(0).

    Parameters
    ----------
    yx, yy : array-like
        Coordinates of the offspring points.
    cx, cy : array-like
        Coordinates of the parent points.
    bandwidth : scalar
        Kernel standard deviation h > 0.

    Returns
    -------
    scalar
        The kernel log-sum. If there are no offspring points, or no parent
        points, the sum has no terms and 0.0 is returned.

    """
    _check_bandwidth(bandwidth)
    offspring = _stack(yx, yy)
    parents = _stack(cx, cy)
    if offspring.shape[0] == 0 or parents.shape[0] == 0:
        return 0.0

    lognorm = _gaussian_lognorm(bandwidth, 2)
    scale = -0.5 / (bandwidth * bandwidth)

    # Loop over blocks of offspring points to save memory
    total = 0.0
    for start in range(0, offspring.shape[0], CHUNKSIZE):
        sqdist = cdist(offspring[start:start + CHUNKSIZE], parents,
                       'sqeuclidean')
        total += numpy.sum(logsumexp(scale * sqdist, axis=-1))
    return float(total - offspring.shape[0] * lognorm)


def kernel_mass_inside(cx, cy, bandwidth, window, nmc, rng=None):
    """
    Estimate the total kernel mass inside a window by Monte Carlo

    Each parent point is displaced `nmc` times by independent Gaussian draws
    with standard deviation `bandwidth` in each coordinate, and the number of
    displaced points inside the window is divided by `nmc`. The result
    estimates sum_k P(C_k + h * eps in W), the expected number of offspring per
    unit offspring intensity. Fresh draws are made on every call.

    Parameters
    ----------
    cx, cy : array-like
        Coordinates of the parent points.
    bandwidth : scalar
        Kernel standard deviation h > 0.
    window : Window
        Observation window.
    nmc : int
        Number of Monte Carlo draws per parent point.
    rng : Generator or int or None, optional
        Source of the normal draws.

    Returns
    -------
    scalar
        Estimated kernel mass inside the window. 0.0 if there are no parent
        points.

    """
    _check_bandwidth(bandwidth)
    if nmc < 1:
        raise ValueError("'nmc' must be a positive integer")
    cx, cy = coordinate_arrays(cx, cy)
    cx, cy = cx.ravel(), cy.ravel()
    if cx.size == 0:
        return 0.0

    rng = random_generator(rng)
    shape = (cx.size, nmc)
    bigx = cx[:, numpy.newaxis] + bandwidth * rng.standard_normal(shape)
    bigy = cy[:, numpy.newaxis] + bandwidth * rng.standard_normal(shape)
    return numpy.sum(check_within_window(bigx, bigy, window)) / nmc


def bandwidth_sample(yx, yy, cx, cy):
    """
    Compute one bandwidth estimate per offspring point from its distance to
    the nearest parent point

    If an offspring point is a bivariate Gaussian displacement with standard
    deviation h from its nearest parent, the distance is Rayleigh distributed
    with mean h * sqrt(pi / 2). The distances are rescaled accordingly.

    :yx, yy: coordinates of the offspring points
    :cx, cy: coordinates of the parent points
    :returns: array with one bandwidth estimate per offspring point
    :raises InsufficientData: if there are no offspring or no parent points

    """
    offspring = _stack(yx, yy)
    parents = _stack(cx, cy)
    if offspring.shape[0] == 0:
        raise InsufficientData("no offspring points to estimate a bandwidth "
                               "from")
    if parents.shape[0] == 0:
        raise InsufficientData("no parent points to estimate a bandwidth "
                               "from")

    neighbors = NearestNeighbors(n_neighbors=1).fit(parents)
    distances, __ = neighbors.kneighbors(offspring)
    return _SQRT_2_PI * distances[:, 0]


def initial_bandwidth(yx, yy, cx, cy, jitter=False, rng=None):
    """
    Compute a heuristic initial bandwidth for an offspring type

    The bandwidth is the mean of `bandwidth_sample`. If `jitter` is True,
    zero-mean uniform noise of half-width `JITTER_FACTOR * h` is added, which
    is useful to start several chains at different points.

    :yx, yy: coordinates of the offspring points
    :cx, cy: coordinates of the parent points
    :jitter: if True, perturb the estimate
    :rng: Generator or seed used for the jitter
    :returns: positive scalar
    :raises InsufficientData: if there are no offspring or no parent points,
                              or all offspring points coincide with parents

    """
    h = float(numpy.mean(bandwidth_sample(yx, yy, cx, cy)))
    if not h > 0.0:
        raise InsufficientData("all offspring points coincide with parent "
                               "points")
    if jitter:
        amount = JITTER_FACTOR * h
        h += random_generator(rng).uniform(-amount, amount)
    return h
