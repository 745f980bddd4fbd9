#!/usr/bin/env python

"""File: formats.py
Module to write and read the .mat-files used to checkpoint posterior samples
while a sampler is running.

"""

import os
from os import path
import tempfile

import numpy
from scipy import io


# Parameter name: variable name in the .mat-file
CHECKPOINT_VARIABLES = (
    ('lambda_c', 'alllambdaC'),
    ('mu0', 'allmu0'),
    ('h', 'allh'),
    ('lambda_o', 'alllambdaO'),
)


def save_checkpoint(outfile, lambda_c, mu0, h, lambda_o=None):
    """
    Write the sample history of all parameters to a .mat-file

    The file is first written to a temporary file in the same directory, which
    then replaces `outfile`. A reader thus always finds either the previous
    or the new complete checkpoint.

    :outfile: path of the checkpoint file. It is overwritten if it exists.
    :lambda_c: array of parent intensity samples, one row per iteration
    :mu0: array of offspring intensity samples
    :h: array of bandwidth samples
    :lambda_o: array of unrelated intensity samples, or None
    :returns: None

    Arrays with no columns (or None) are left out of the file.

    """
    values = dict(lambda_c=lambda_c, mu0=mu0, h=h, lambda_o=lambda_o)
    data = {}
    for name, variable in CHECKPOINT_VARIABLES:
        value = values[name]
        if value is None:
            continue
        value = numpy.asarray(value, dtype=float)
        if value.ndim != 2 or value.shape[1] == 0:
            continue
        data[variable] = value

    directory = path.dirname(path.abspath(outfile))
    fd, tmpfile = tempfile.mkstemp(suffix='.mat', dir=directory)
    try:
        with os.fdopen(fd, 'wb') as f:
            io.savemat(f, data)
        os.replace(tmpfile, outfile)
    except BaseException:
        os.remove(tmpfile)
        raise


def load_checkpoint(infile):
    """
    Read the sample history written by `save_checkpoint`

    :infile: file path or object with checkpointed samples
    :returns: dict with the fields 'lambda_c', 'mu0', 'h' and 'lambda_o',
              each a 2d array with one row per iteration, or None if the
              parameter was not stored

    """
    data = io.loadmat(infile)
    return {name: data.get(variable)
            for name, variable in CHECKPOINT_VARIABLES}
