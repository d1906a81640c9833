#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Area of applicability computation.

Normalization, importance weighting, nearest-neighbour distances, the
outlier threshold and assembly of DI/AOA outputs.
"""
