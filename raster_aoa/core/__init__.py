#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Core functionality for the area of applicability pipeline.

This module contains configuration management, logging setup, the error
hierarchy and tabular input/output handling.
"""
