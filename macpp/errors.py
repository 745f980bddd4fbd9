#!/usr/bin/env python

"""File: errors.py
Module defining the exceptions raised when a model is set up or evaluated with
invalid input

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


class ConfigurationError(ValueError):
    """
    Raised when a sampler is configured inconsistently, before any sampling
    starts

    """


class ShapeMismatch(ValueError):
    """
    Raised when arrays of x and y coordinates do not have the same shape

    """


class InsufficientData(ValueError):
    """
    Raised when a statistic requires points from a pattern that has none

    """
