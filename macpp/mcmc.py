#!/usr/bin/env python

"""File: mcmc.py
Module to draw posterior samples for a marked parent and offspring point
process by Metropolis-within-Gibbs MCMC.

Unrelated and parent-only point types are homogeneous Poisson processes with
Gamma priors on their intensities. Offspring of type j form a Poisson process
with intensity mu0[j] * sum_k K_h[j](. - C_k) restricted to the window, where
C_k are the points of the associated parent type and K_h is an isotropic
Gaussian kernel with standard deviation h. The intensities are updated by
conjugate Gibbs steps, and each bandwidth h[j] by a random walk Metropolis step
under a Half-Normal prior.

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

import logging
from numbers import Integral

import numpy
import pandas
from scipy import stats
from tqdm import tqdm

from .errors import ConfigurationError
from .formats import save_checkpoint
from .kernels import initial_bandwidth, kernel_logsum, kernel_mass_inside
from .pointpatterns import Partition
from .utils import AlmostImmutable, random_generator

logger = logging.getLogger(__name__)

BOUNDARY_MODES = ('window', 'convex')
CHECKPOINT_CAPACITY = 10000

# The bandwidth prior puts this probability below hclimp * window diagonal
PRIOR_QUANTILE = 0.995


def gamma_posterior_draw(shape, rate, counts, exposure, rng):
    """
    Draw Poisson intensities from their conjugate Gamma posteriors

    :shape, rate: hyperparameters of the Gamma prior
    :counts: array of observed point counts
    :exposure: scalar or array of expected counts per unit intensity (the
               window area for a homogeneous process)
    :rng: numpy Generator
    :returns: array of draws from Gamma(shape + counts, rate + exposure)

    """
    counts = numpy.asarray(counts, dtype=float)
    return rng.gamma(shape + counts, 1.0 / (rate + numpy.asarray(exposure)),
                     size=counts.shape)


class OffspringChain(object):
    """
    Bandwidth state of a single offspring type

    The bandwidth `h` is always stored together with the kernel mass inside
    the window (`bignum1`) and the kernel log-sum (`bignum2`) computed at that
    bandwidth, and the three are only ever replaced together.

    Parameters
    ----------
    parent_label, offspring_label : str
        Marks of the parent and offspring points.
    parents, offspring : PointPattern
        Parent and offspring points.
    h, bignum1, bignum2 : scalar
        Current bandwidth and the statistics evaluated at it.

    """

    def __init__(self, parent_label, offspring_label, parents, offspring, h,
                 bignum1, bignum2):
        self.parent_label = parent_label
        self.offspring_label = offspring_label
        self.parents = parents
        self.offspring = offspring
        self.h = h
        self.bignum1 = bignum1
        self.bignum2 = bignum2
        self.proposals = 0
        self.accepted = 0

    @classmethod
    def initialize(cls, parent_label, offspring_label, parents, offspring,
                   window, nmc, jitter=False, rng=None):
        """
        Create the chain state at the heuristic initial bandwidth

        See `OffspringChain` and `kernels.initial_bandwidth` for parameters.

        """
        rng = random_generator(rng)
        h = initial_bandwidth(offspring.x, offspring.y, parents.x, parents.y,
                              jitter=jitter, rng=rng)
        bignum1 = kernel_mass_inside(parents.x, parents.y, h, window, nmc,
                                     rng=rng)
        bignum2 = kernel_logsum(offspring.x, offspring.y, parents.x,
                                parents.y, h)
        return cls(parent_label, offspring_label, parents, offspring, h,
                   bignum1, bignum2)

    @property
    def acceptance_rate(self):
        if self.proposals == 0:
            return numpy.nan
        return self.accepted / self.proposals

    def loglik(self, mu0, bignum1=None, bignum2=None):
        """
        Evaluate the bandwidth-dependent part of the offspring log-likelihood

        :mu0: offspring intensity
        :bignum1, bignum2: statistics to use instead of the cached ones
        :returns: -mu0 * bignum1 + bignum2

        """
        if bignum1 is None:
            bignum1 = self.bignum1
        if bignum2 is None:
            bignum2 = self.bignum2
        return -mu0 * bignum1 + bignum2

    def update_bandwidth(self, mu0, hsd, h_step, window, nmc, rng):
        """
        Perform one random walk Metropolis update of the bandwidth

        Proposals h' <= 0 are rejected without further computation. Otherwise
        the statistics are recomputed at h' (with fresh Monte Carlo draws for
        the kernel mass) and h' is accepted with probability
        min(1, exp(loglik' - loglik + log prior ratio)), the prior being
        Half-Normal with scale `hsd`.

        Parameters
        ----------
        mu0 : scalar
            Current offspring intensity.
        hsd : scalar
            Scale of the Half-Normal bandwidth prior.
        h_step : scalar
            Standard deviation of the random walk proposal.
        window : Window
            Observation window.
        nmc : int
            Number of Monte Carlo draws per parent point.
        rng : Generator
            Source of randomness.

        Returns
        -------
        bool
            True if the proposal was accepted.

        """
        self.proposals += 1
        h = self.h
        can_h = h + h_step * rng.standard_normal()
        if not can_h > 0.0:
            return False

        log_prior_ratio = -0.5 * ((can_h / hsd) ** 2 - (h / hsd) ** 2)
        parents, offspring = self.parents, self.offspring
        can_bignum1 = kernel_mass_inside(parents.x, parents.y, can_h, window,
                                         nmc, rng=rng)
        can_bignum2 = kernel_logsum(offspring.x, offspring.y, parents.x,
                                    parents.y, can_h)

        log_ratio = (self.loglik(mu0, can_bignum1, can_bignum2) -
                     self.loglik(mu0) + log_prior_ratio)
        if numpy.isnan(log_ratio) or numpy.isposinf(log_ratio):
            raise FloatingPointError(
                "invalid Metropolis log ratio {} for offspring type {!r} "
                "at bandwidth {}".format(log_ratio, self.offspring_label,
                                         can_h))

        if numpy.log(rng.random()) < log_ratio:
            self.h, self.bignum1 = can_h, can_bignum1
            self.bignum2 = can_bignum2
            self.accepted += 1
            return True
        return False


class ChainState(object):
    """
    Mutable state of the sampler at a given iteration

    :lambda_c: array of parent-only intensities
    :mu0: array of offspring intensities
    :lambda_o: array of unrelated intensities
    :chains: list of OffspringChain instances, one per offspring type

    """

    def __init__(self, lambda_c, mu0, lambda_o, chains):
        self.lambda_c = lambda_c
        self.mu0 = mu0
        self.lambda_o = lambda_o
        self.chains = chains

    @property
    def h(self):
        return numpy.array([chain.h for chain in self.chains])

    @property
    def bignum1(self):
        return numpy.array([chain.bignum1 for chain in self.chains])

    @property
    def bignum2(self):
        return numpy.array([chain.bignum2 for chain in self.chains])

    def values(self):
        """
        Return the current parameter values as a dict of arrays

        """
        return dict(lambda_c=self.lambda_c, mu0=self.mu0, h=self.h,
                    lambda_o=self.lambda_o)


class SampleStore(object):
    """
    Preallocated table of retained posterior draws

    :nrows: number of retained iterations
    :ncolumns: dict giving the number of columns for each of the parameters
               'lambda_c', 'mu0', 'h' and 'lambda_o'

    """

    def __init__(self, nrows, ncolumns):
        self.nrows = nrows
        self.samples = {name: numpy.zeros((nrows, ncol))
                        for (name, ncol) in ncolumns.items()}
        self.iterations = numpy.zeros((nrows,), dtype=int)

    def record(self, index, iteration, values):
        """
        Write the parameter values of an iteration to a row of the table

        :index: row index
        :iteration: iteration number the values belong to
        :values: dict of parameter arrays, as returned by `ChainState.values`

        """
        for (name, arr) in self.samples.items():
            arr[index] = values[name]
        self.iterations[index] = iteration

    def frames(self, columns):
        """
        Convert the table to DataFrames indexed by iteration

        :columns: dict giving the column labels for each parameter
        :returns: dict of DataFrames, one per parameter

        """
        index = pandas.Index(self.iterations, name='iteration')
        return {name: pandas.DataFrame(arr, index=index,
                                       columns=list(columns[name]))
                for (name, arr) in self.samples.items()}


class CheckpointBuffer(object):
    """
    Fixed-capacity ring buffer collecting the parameter values of every
    iteration, periodically flushed to a checkpoint file

    Each flush appends the buffered rows to the in-memory history, rewrites
    `outfile` with the full history so far, and clears the buffer.

    :outfile: path of the checkpoint file
    :ncolumns: dict giving the number of columns for each parameter
    :capacity: number of iterations to collect between flushes

    """

    def __init__(self, outfile, ncolumns, capacity=CHECKPOINT_CAPACITY):
        if capacity < 1:
            raise ConfigurationError("checkpoint capacity must be positive")
        self.outfile = outfile
        self.capacity = capacity
        self.buffers = {name: numpy.zeros((capacity, ncol))
                        for (name, ncol) in ncolumns.items()}
        self.history = {name: [] for name in ncolumns}
        self.position = 0
        self.nflushed = 0

    def append(self, values):
        """
        Add the parameter values of one iteration, flushing if the buffer
        becomes full

        """
        for (name, buf) in self.buffers.items():
            buf[self.position] = values[name]
        self.position += 1
        if self.position == self.capacity:
            self.flush()

    def stacked(self):
        """
        Return the flushed history as a dict of 2d arrays

        """
        return {name: numpy.vstack(chunks) if chunks
                else numpy.zeros((0, self.buffers[name].shape[1]))
                for (name, chunks) in self.history.items()}

    def flush(self):
        """
        Move the buffered rows to the history, write the history to the
        checkpoint file, and clear the buffer

        """
        for (name, buf) in self.buffers.items():
            self.history[name].append(buf[:self.position].copy())
        self.nflushed += self.position
        save_checkpoint(self.outfile, **self.stacked())
        self.position = 0
        logger.info("Checkpointed %d iterations to %s", self.nflushed,
                    self.outfile)


class PosteriorSamples(AlmostImmutable):
    """
    Retained posterior draws of a parent and offspring model

    Attributes
    ----------
    lambda_c : DataFrame
        Parent-only intensities, one column per parent type that is not also
        an offspring type.
    mu0 : DataFrame
        Offspring intensities, one column per offspring type.
    h : DataFrame
        Bandwidths, one column per offspring type.
    lambda_o : DataFrame or None
        Unrelated intensities, one column per unrelated type, or None if
        there are no unrelated types.
    acceptance : Series
        Metropolis acceptance rate of the bandwidth of each offspring type.

    All DataFrames are indexed by iteration number.

    """

    def __init__(self, lambda_c, mu0, h, lambda_o, acceptance):
        self.lambda_c = lambda_c
        self.mu0 = mu0
        self.h = h
        self.lambda_o = lambda_o
        self.acceptance = acceptance

    def as_dict(self):
        """
        Return the four sample tables keyed by parameter name

        """
        return {'lambdaC': self.lambda_c, 'mu0': self.mu0, 'h': self.h,
                'lambdaO': self.lambda_o}

    def summary(self, percentiles=(0.025, 0.5, 0.975)):
        """
        Summarize the marginal posterior of each parameter

        :percentiles: percentiles to include in the summary
        :returns: DataFrame with one row per (parameter, type) and columns
                  with the sample count, mean, standard deviation, extrema
                  and the requested percentiles

        """
        frames = {name: frame for (name, frame) in self.as_dict().items()
                  if frame is not None and frame.shape[1] > 0}
        combined = pandas.concat(frames, axis=1)
        return combined.describe(percentiles=list(percentiles)).transpose()


class ParentOffspringSampler(AlmostImmutable):
    """
    Set up a Metropolis-within-Gibbs sampler for a marked parent and
    offspring point process

    Parameters
    ----------
    pattern : MarkedPointPattern
        The data.
    parent_labels : str or sequence
        A single parent mark shared by all offspring types, or one parent mark
        per offspring type.
    offspring_labels : str or sequence
        The offspring marks.
    boundary : str {'window', 'convex'}, optional
        ``window``
            The window of `pattern` is used as is.
        ``convex``
            The convex hull of all points in `pattern` is used as window.
    jitter : bool, optional
        If True, the initial bandwidths are jittered. Useful for running
        multiple chains.
    al, bl : scalar, optional
        Shape and rate of the Gamma priors on parent-only intensities.
    am, bm : scalar, optional
        Shape and rate of the Gamma priors on offspring intensities.
    ao, bo : scalar, optional
        Shape and rate of the Gamma priors on unrelated intensities.
    hclimp : scalar in (0, 1], optional
        Proportion of the window diagonal placed at the 99.5th percentile of
        the Half-Normal prior on each bandwidth.
    nmc : int, optional
        Number of Monte Carlo draws per parent point used to approximate the
        kernel mass inside the window. Larger values reduce the noise in the
        Metropolis ratio at linear cost.
    h_step : scalar, optional
        Standard deviation of the random walk bandwidth proposals.
    rng : Generator or int or None, optional
        Source of randomness, or a seed for a new Generator.

    """

    def __init__(self, pattern, parent_labels, offspring_labels,
                 boundary='window', jitter=False, al=0.01, bl=0.01, am=0.01,
                 bm=0.01, ao=0.01, bo=0.01, hclimp=0.05, nmc=100,
                 h_step=0.0075, rng=None):
        if boundary not in BOUNDARY_MODES:
            raise ConfigurationError("unknown boundary mode: {}"
                                     .format(boundary))
        if boundary == 'convex':
            pattern = pattern.convex()

        priors = dict(al=al, bl=bl, am=am, bm=bm, ao=ao, bo=bo)
        for (name, value) in priors.items():
            if not value > 0.0:
                raise ConfigurationError("'{}' must be positive, got {}"
                                         .format(name, value))
        if not 0.0 < hclimp <= 1.0:
            raise ConfigurationError("'hclimp' must be in (0, 1], got {}"
                                     .format(hclimp))
        if not (isinstance(nmc, Integral) and nmc >= 1):
            raise ConfigurationError("'nmc' must be a positive integer, got "
                                     "{}".format(nmc))
        if not h_step > 0.0:
            raise ConfigurationError("'h_step' must be positive, got {}"
                                     .format(h_step))

        self.partition = Partition(pattern, parent_labels, offspring_labels)
        self.window = self.partition.window
        self.priors = priors
        self.jitter = jitter
        self.nmc = int(nmc)
        self.h_step = h_step
        self.hsd = (hclimp * self.window.diagonal() /
                    stats.norm.ppf(PRIOR_QUANTILE))
        self.rng = random_generator(rng)
        logger.debug("Half-Normal bandwidth prior scale: %g", self.hsd)

    def columns(self):
        """
        Return the column labels of each parameter

        """
        partition = self.partition
        return dict(lambda_c=partition.parent_only_labels,
                    mu0=partition.offspring_labels,
                    h=partition.offspring_labels,
                    lambda_o=partition.unrelated_labels)

    def ncolumns(self):
        return {name: len(labels) for (name, labels) in self.columns().items()}

    def initial_state(self):
        """
        Compute the initial state of the chain

        Bandwidths start at the nearest-neighbor heuristic, and offspring
        intensities at the number of offspring divided by the kernel mass
        inside the window.

        Returns
        -------
        ChainState
            Initial state.

        """
        partition = self.partition
        chains = []
        for (plabel, olabel, parents, offspring) in zip(
                partition.parent_labels, partition.offspring_labels,
                partition.parents, partition.offspring):
            chain = OffspringChain.initialize(
                plabel, olabel, parents, offspring, self.window, self.nmc,
                jitter=self.jitter, rng=self.rng)
            logger.debug("Initial bandwidth for offspring type %r: %g",
                         olabel, chain.h)
            chains.append(chain)

        bignum1 = numpy.array([chain.bignum1 for chain in chains])
        with numpy.errstate(divide='ignore'):
            mu0 = partition.offspring_counts() / bignum1
        return ChainState(
            lambda_c=numpy.zeros((len(partition.parent_only_labels),)),
            mu0=mu0,
            lambda_o=numpy.zeros((len(partition.unrelated_labels),)),
            chains=chains,
        )

    def step(self, state):
        """
        Perform one full iteration of updates on a chain state, in place

        The order is: unrelated intensities, parent-only intensities,
        offspring intensities (conditional on the current kernel masses), and
        finally the bandwidth of each offspring type.

        :state: ChainState instance to update
        :returns: None

        """
        rng = self.rng
        partition = self.partition
        priors = self.priors
        area = self.window.area

        state.lambda_o = gamma_posterior_draw(
            priors['ao'], priors['bo'], partition.unrelated_counts, area, rng)
        state.lambda_c = gamma_posterior_draw(
            priors['al'], priors['bl'], partition.parent_only_counts, area,
            rng)
        state.mu0 = gamma_posterior_draw(
            priors['am'], priors['bm'], partition.offspring_counts(),
            state.bignum1, rng)

        for (chain, mu0) in zip(state.chains, state.mu0):
            chain.update_bandwidth(mu0, self.hsd, self.h_step, self.window,
                                   self.nmc, rng)

    def run(self, iters=20000, burn=10000, thin=1, checkpoint=False,
            outfile=None, checkpoint_every=CHECKPOINT_CAPACITY,
            progress=False):
        """
        Run the chain and collect posterior samples

        All iterations perform the same updates. Values are retained from
        iteration `burn + thin`, and every `thin` iterations thereafter. If
        `checkpoint` is True, the values of every iteration, including the
        burn-in, are also written to `outfile` every `checkpoint_every`
        iterations and after the last iteration.

        Parameters
        ----------
        iters : int, optional
            Total number of iterations.
        burn : int, optional
            Number of initial iterations to discard.
        thin : int, optional
            Thinning interval.
        checkpoint : bool, optional
            If True, checkpoint to `outfile` while running.
        outfile : str, optional
            Path of the checkpoint file. Required if `checkpoint` is True.
        checkpoint_every : int, optional
            Number of iterations between checkpoints.
        progress : bool, optional
            If True, display a progress bar.

        Returns
        -------
        PosteriorSamples
            The retained draws.

        """
        if checkpoint and outfile is None:
            raise ConfigurationError("checkpointing requires an 'outfile'")
        if not (isinstance(iters, Integral) and iters >= 1):
            raise ConfigurationError("'iters' must be a positive integer")
        if not (isinstance(burn, Integral) and 0 <= burn < iters):
            raise ConfigurationError("'burn' must be a non-negative integer "
                                     "smaller than 'iters'")
        if not (isinstance(thin, Integral) and thin >= 1):
            raise ConfigurationError("'thin' must be a positive integer")

        ncolumns = self.ncolumns()
        store = SampleStore((iters - burn) // thin, ncolumns)
        buffer_ = None
        if checkpoint:
            buffer_ = CheckpointBuffer(outfile, ncolumns,
                                       capacity=checkpoint_every)

        state = self.initial_state()

        iterations = range(1, iters + 1)
        if progress:
            iterations = tqdm(iterations, desc="MCMC", unit="iter")
        for i in iterations:
            self.step(state)
            values = state.values()

            if i > burn and (i - burn) % thin == 0:
                store.record((i - burn) // thin - 1, i, values)

            if buffer_ is not None:
                buffer_.append(values)
                if i == iters and buffer_.position > 0:
                    buffer_.flush()

        acceptance = pandas.Series(
            [chain.acceptance_rate for chain in state.chains],
            index=list(self.partition.offspring_labels), name='acceptance')
        logger.info("Bandwidth acceptance rates: %s",
                    ", ".join("{}={:.3f}".format(label, rate)
                              for (label, rate) in acceptance.items()))

        frames = store.frames(self.columns())
        lambda_o = frames['lambda_o'] if ncolumns['lambda_o'] > 0 else None
        return PosteriorSamples(frames['lambda_c'], frames['mu0'],
                                frames['h'], lambda_o, acceptance)


def sample_posterior(pattern, parent_labels, offspring_labels, iters=20000,
                     burn=10000, thin=1, checkpoint=False, outfile=None,
                     checkpoint_every=CHECKPOINT_CAPACITY, progress=False,
                     **kwargs):
    """
    Draw posterior samples for a marked parent and offspring point process

    This is a convenience wrapper around `ParentOffspringSampler`. Keyword
    arguments not listed here are passed to the `ParentOffspringSampler`
    constructor; the others are passed to `ParentOffspringSampler.run`.

    Returns
    -------
    PosteriorSamples
        The retained draws.

    """
    sampler = ParentOffspringSampler(pattern, parent_labels, offspring_labels,
                                     **kwargs)
    return sampler.run(iters=iters, burn=burn, thin=thin,
                       checkpoint=checkpoint, outfile=outfile,
                       checkpoint_every=checkpoint_every, progress=progress)
