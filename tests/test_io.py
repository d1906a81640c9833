#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Test suite for input/output, configuration and utility helpers.
"""

import copy
import json
import os
import tempfile
import unittest
import numpy as np
import pandas as pd
import yaml

from raster_aoa.core import config
from raster_aoa.core.io import (
    export_results, load_importance, load_table, save_metadata, split_features
)
from raster_aoa.utils.utils import chunk_slices, parallel_apply


class TestTables(unittest.TestCase):
    """Test CSV loading and export."""

    def setUp(self):
        """Set up test fixtures."""
        self.tmpdir = tempfile.TemporaryDirectory()
        self.dir = self.tmpdir.name

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_nodata_becomes_nan(self):
        path = os.path.join(self.dir, "cells.csv")
        pd.DataFrame({"id": [1, 2], "red": [0.5, -9999.0]}).to_csv(path, index=False)
        df = load_table(path)
        self.assertTrue(np.isnan(df.loc[1, "red"]))
        self.assertEqual(df.loc[0, "red"], 0.5)

    def test_split_features_excludes_columns(self):
        df = pd.DataFrame({"polygon": [1, 2], "label": ["water", "forest"],
                           "red": [0.1, 0.2], "nir": [0.3, 0.4]})
        features, names = split_features(df, exclude=["polygon", None])
        self.assertEqual(names, ["red", "nir"])
        self.assertEqual(list(features.columns), ["red", "nir"])

    def test_split_features_missing_column(self):
        with self.assertRaises(KeyError):
            split_features(pd.DataFrame({"red": [1.0]}), ["red", "nir"])

    def test_load_importance(self):
        path = os.path.join(self.dir, "importance.csv")
        pd.DataFrame({"feature": ["red", "nir"], "importance": [0.2, 0.8]}).to_csv(path, index=False)
        self.assertEqual(load_importance(path), {"red": 0.2, "nir": 0.8})

    def test_load_importance_positional(self):
        path = os.path.join(self.dir, "importance.csv")
        pd.DataFrame({"name": ["red"], "score": [3]}).to_csv(path, index=False)
        self.assertEqual(load_importance(path), {"red": 3.0})

    def test_chunked_export(self):
        path = os.path.join(self.dir, "out", "result.csv")
        df = pd.DataFrame({"di": np.arange(25, dtype=float), "aoa": np.ones(25)})
        saved = copy.deepcopy(config.EXPORT_CONFIG)
        config.EXPORT_CONFIG.update({"chunk_export": True, "chunk_size": 10})
        try:
            export_results(df, path)
        finally:
            config.EXPORT_CONFIG.clear()
            config.EXPORT_CONFIG.update(saved)
        pd.testing.assert_frame_equal(pd.read_csv(path), df)

    def test_metadata_formats(self):
        metadata = {"threshold": {"cutoff": 1.5}}
        json_path = save_metadata(metadata, os.path.join(self.dir, "meta.txt"), format="json")
        yaml_path = save_metadata(metadata, os.path.join(self.dir, "meta.txt"), format="yaml")

        with open(json_path) as f:
            self.assertEqual(json.load(f)["threshold"], {"cutoff": 1.5})
        with open(yaml_path) as f:
            self.assertEqual(yaml.safe_load(f)["threshold"], {"cutoff": 1.5})
        self.assertTrue(str(json_path).endswith(".json"))
        self.assertTrue(str(yaml_path).endswith(".yaml"))


class TestConfig(unittest.TestCase):
    """Test YAML configuration overrides."""

    def setUp(self):
        """Set up test fixtures."""
        self.saved = copy.deepcopy(config.AOA_CONFIG)
        self.tmpdir = tempfile.TemporaryDirectory()

    def tearDown(self):
        config.AOA_CONFIG.clear()
        config.AOA_CONFIG.update(self.saved)
        self.tmpdir.cleanup()

    def _write(self, content):
        path = os.path.join(self.tmpdir.name, "config.yaml")
        with open(path, "w") as f:
            yaml.safe_dump(content, f)
        return path

    def test_override(self):
        config.load_config(self._write({"aoa": {"iqr_multiplier": 3.0}}))
        self.assertEqual(config.AOA_CONFIG["iqr_multiplier"], 3.0)
        self.assertEqual(config.AOA_CONFIG["central_value"], "median")

    def test_unknown_section(self):
        with self.assertRaises(ValueError):
            config.load_config(self._write({"terrain": {"slope": True}}))

    def test_none_is_noop(self):
        sections = config.load_config(None)
        self.assertIs(sections["aoa"], config.AOA_CONFIG)


class TestUtils(unittest.TestCase):
    """Test chunking and parallel helpers."""

    def test_chunk_slices_cover_rows(self):
        slices = chunk_slices(103, 10)
        covered = np.concatenate([np.arange(103)[s] for s in slices])
        np.testing.assert_array_equal(covered, np.arange(103))
        self.assertTrue(all(s.stop - s.start <= 10 for s in slices))

    def test_chunk_slices_empty(self):
        self.assertEqual(chunk_slices(0, 10), [])

    def test_chunk_slices_invalid(self):
        with self.assertRaises(ValueError):
            chunk_slices(10, 0)

    def test_parallel_apply_keeps_order(self):
        items = list(range(20))
        self.assertEqual(parallel_apply(lambda x: x * x, items, n_jobs=2, prefer="threads"),
                         [x * x for x in items])

    def test_parallel_apply_propagates_errors(self):
        def fail(x):
            if x == 3:
                raise RuntimeError("chunk failed")
            return x

        with self.assertRaises(RuntimeError):
            parallel_apply(fail, list(range(6)), n_jobs=2, prefer="threads")


if __name__ == '__main__':
    unittest.main()
