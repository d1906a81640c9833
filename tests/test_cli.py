#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Test suite for the command line interface.
"""

import json
import os
import tempfile
import unittest
import numpy as np
import pandas as pd

from raster_aoa.cli import main


class TestCommandLine(unittest.TestCase):
    """Run the CLI end to end on temporary CSV tables."""

    def setUp(self):
        """Set up test fixtures."""
        self.tmpdir = tempfile.TemporaryDirectory()
        self.dir = self.tmpdir.name
        rng = np.random.RandomState(21)

        n_polygons, per_polygon = 6, 8
        centers = rng.normal(scale=2.0, size=(n_polygons, 3))
        polygon = np.repeat(np.arange(n_polygons), per_polygon)
        values = centers[polygon] + rng.normal(scale=0.3, size=(n_polygons * per_polygon, 3))
        train = pd.DataFrame(values, columns=["red", "nir", "swir"])
        train.insert(0, "polygon", polygon)
        train["label"] = polygon % 2
        self.train_path = os.path.join(self.dir, "train.csv")
        train.to_csv(self.train_path, index=False)

        query = pd.DataFrame(rng.normal(scale=3.0, size=(30, 3)), columns=["red", "nir", "swir"])
        query.insert(0, "id", np.arange(30))
        query.loc[4, "nir"] = -9999.0
        self.query_path = os.path.join(self.dir, "query.csv")
        query.to_csv(self.query_path, index=False)

        self.importance_path = os.path.join(self.dir, "importance.csv")
        pd.DataFrame({"feature": ["red", "nir", "swir"],
                      "importance": [0.5, 1.0, 0.25]}).to_csv(self.importance_path, index=False)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_run(self):
        output = os.path.join(self.dir, "result.csv")
        code = main([
            "run", "--train", self.train_path, "--group-column", "polygon",
            "--exclude-columns", "label", "--importance", self.importance_path,
            "--query", self.query_path, "--output", output, "--keep-columns", "id",
            "--n-jobs", "1", "--save-metadata", "--log-level", "WARNING",
        ])
        self.assertEqual(code, 0)

        result = pd.read_csv(output)
        self.assertEqual(list(result.columns), ["id", "di", "aoa"])
        self.assertEqual(len(result), 30)
        self.assertTrue(np.isnan(result.loc[4, "di"]))
        self.assertTrue(np.isnan(result.loc[4, "aoa"]))
        self.assertTrue(set(result["aoa"].dropna().unique()) <= {0.0, 1.0})

        with open(os.path.join(self.dir, "result.json")) as f:
            metadata = json.load(f)
        self.assertEqual(metadata["fit"]["feature_names"], ["red", "nir", "swir"])
        self.assertEqual(metadata["fit"]["weights"]["nir"], 1.0)
        self.assertEqual(metadata["result"]["valid_cells"], 29)

    def test_fit_then_score(self):
        state = os.path.join(self.dir, "state.joblib")
        output = os.path.join(self.dir, "scored.csv")

        code = main(["fit", "--train", self.train_path, "--group-column", "polygon",
                     "--features", "red,nir,swir", "--output", state, "--log-level", "WARNING"])
        self.assertEqual(code, 0)
        self.assertTrue(os.path.exists(state))

        code = main(["score", "--state", state, "--query", self.query_path,
                     "--output", output, "--log-level", "WARNING"])
        self.assertEqual(code, 0)
        self.assertEqual(len(pd.read_csv(output)), 30)

    def test_single_group_fails(self):
        train = pd.read_csv(self.train_path)
        train["label"] = 1
        train.to_csv(self.train_path, index=False)
        code = main(["fit", "--train", self.train_path, "--group-column", "label",
                     "--output", os.path.join(self.dir, "s.joblib"), "--log-level", "CRITICAL"])
        self.assertEqual(code, 1)

    def test_missing_query_feature_fails(self):
        state = os.path.join(self.dir, "state.joblib")
        main(["fit", "--train", self.train_path, "--group-column", "polygon",
              "--exclude-columns", "label", "--output", state, "--log-level", "CRITICAL"])

        query = pd.read_csv(self.query_path).drop(columns=["swir"])
        query.to_csv(self.query_path, index=False)
        code = main(["score", "--state", state, "--query", self.query_path,
                     "--output", os.path.join(self.dir, "x.csv"), "--log-level", "CRITICAL"])
        self.assertEqual(code, 1)


if __name__ == '__main__':
    unittest.main()
