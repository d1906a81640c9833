#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Test suite for importance weighting and model adapters.
"""

import unittest
import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.neighbors import KNeighborsClassifier

from raster_aoa.aoa.estimator import AreaOfApplicability
from raster_aoa.aoa.models import ImportanceMapping, SklearnModel, TrainedModel, as_trained_model
from raster_aoa.aoa.weights import validate_weights, weights_from_importance
from raster_aoa.core.exceptions import InvalidWeights


class TestImportanceWeighter(unittest.TestCase):
    """Test conversion of importance scores to weights."""

    def setUp(self):
        """Set up test fixtures."""
        self.names = ["blue", "green", "red", "nir"]

    def test_rescaled_to_max_one(self):
        weights = weights_from_importance({"blue": 2.0, "green": 4.0, "red": 1.0, "nir": 8.0},
                                          self.names)
        self.assertEqual(weights, {"blue": 0.25, "green": 0.5, "red": 0.125, "nir": 1.0})

    def test_missing_features_get_zero(self):
        weights = weights_from_importance({"red": 3.0, "nir": 6.0}, self.names)
        self.assertEqual(weights["blue"], 0.0)
        self.assertEqual(weights["green"], 0.0)
        self.assertEqual(weights["nir"], 1.0)

    def test_extra_features_ignored(self):
        weights = weights_from_importance({"red": 1.0, "swir": 10.0}, self.names)
        self.assertEqual(set(weights), set(self.names))
        self.assertEqual(weights["red"], 1.0)

    def test_no_importance_falls_back_to_uniform(self):
        with self.assertLogs("raster_aoa", level="WARNING"):
            weights = weights_from_importance(None, self.names)
        self.assertEqual(weights, {name: 1.0 for name in self.names})

    def test_all_zero_rejected(self):
        with self.assertRaises(InvalidWeights):
            weights_from_importance({name: 0.0 for name in self.names}, self.names)

    def test_negative_rejected(self):
        with self.assertRaises(InvalidWeights) as ctx:
            weights_from_importance({"blue": 1.0, "red": -0.5}, self.names)
        self.assertEqual(ctx.exception.feature, "red")

    def test_non_finite_rejected(self):
        with self.assertRaises(InvalidWeights):
            validate_weights({"blue": np.nan}, self.names)

    def test_unknown_explicit_weight_rejected(self):
        with self.assertRaises(InvalidWeights):
            validate_weights({"swir": 1.0}, self.names)

    def test_validate_keeps_scale(self):
        values = validate_weights({"blue": 3.0, "nir": 6.0}, self.names)
        np.testing.assert_array_equal(values, [3.0, 0.0, 0.0, 6.0])


class TestModelAdapters(unittest.TestCase):
    """Test resolution of trained models to importance scores."""

    def setUp(self):
        """Set up test fixtures."""
        rng = np.random.RandomState(0)
        self.X = pd.DataFrame(rng.normal(size=(60, 3)), columns=["a", "b", "c"])
        self.y = (self.X["a"] > 0).astype(int)
        self.groups = np.repeat(np.arange(6), 10)

    def test_mapping(self):
        model = as_trained_model({"a": 1, "b": 2})
        self.assertIsInstance(model, ImportanceMapping)
        self.assertEqual(model.importance(), {"a": 1.0, "b": 2.0})

    def test_custom_object_passes_through(self):
        class Model:
            def importance(self):
                return {"a": 1.0}

        model = Model()
        self.assertIs(as_trained_model(model), model)
        self.assertIsInstance(model, TrainedModel)

    def test_random_forest(self):
        rf = RandomForestClassifier(n_estimators=10, random_state=0).fit(self.X, self.y)
        importance = as_trained_model(rf).importance()
        self.assertEqual(list(importance), ["a", "b", "c"])
        self.assertEqual(max(importance, key=importance.get), "a")

    def test_linear_model(self):
        lr = LogisticRegression().fit(self.X.to_numpy(), self.y)
        importance = SklearnModel(lr, ["a", "b", "c"]).importance()
        self.assertTrue(all(v >= 0 for v in importance.values()))
        self.assertEqual(max(importance, key=importance.get), "a")

    def test_model_without_importance(self):
        knn = KNeighborsClassifier(n_neighbors=3).fit(self.X, self.y)
        self.assertIsNone(as_trained_model(knn).importance())

    def test_reordered_model_columns(self):
        rf = RandomForestClassifier(n_estimators=10, random_state=0)
        rf.fit(self.X[["c", "b", "a"]], self.y)
        expected = dict(zip(["c", "b", "a"], rf.feature_importances_))

        aoa = AreaOfApplicability().fit(self.X, groups=self.groups, model=rf)
        self.assertEqual(max(aoa.weights_, key=aoa.weights_.get), "a")
        self.assertEqual(aoa.weights_["a"], 1.0)
        for name in ["a", "b", "c"]:
            self.assertAlmostEqual(aoa.weights_[name], expected[name] / expected["a"])

    def test_model_trained_on_feature_subset(self):
        rf = RandomForestClassifier(n_estimators=10, random_state=0)
        rf.fit(self.X[["a", "b"]], self.y)

        aoa = AreaOfApplicability().fit(self.X, groups=self.groups, model=rf)
        self.assertEqual(list(aoa.weights_), ["a", "b", "c"])
        self.assertEqual(aoa.weights_["c"], 0.0)
        self.assertEqual(aoa.weights_["a"], 1.0)

    def test_unsupported_object(self):
        with self.assertRaises(TypeError):
            as_trained_model(42)


if __name__ == '__main__':
    unittest.main()
