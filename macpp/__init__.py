"""
macpp: Bayesian analysis of marked ancestor and descendant point patterns

"""

from .errors import ConfigurationError, InsufficientData, ShapeMismatch
from .windows import Window, check_within_window
from .pointpatterns import PointPattern, MarkedPointPattern, Partition
from .kernels import (initial_bandwidth, kernel_logsum, kernel_mass_inside)
from .mcmc import (ParentOffspringSampler, PosteriorSamples,
                   sample_posterior)
from .formats import load_checkpoint, save_checkpoint
