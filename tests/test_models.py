import dataclasses
import os
import tempfile
import unittest
from unittest import mock
import numpy as np
from joblib import parallel_backend
from sklearn.datasets import make_classification

from data.dataset import Dataset
from data.exceptions import (
    InvalidDatasetError, ModelTrainingError, UnsupportedModelError, EmptyResultSetError
)
from models.classifiers import (
    Classifier, AdaBoostClassifier, DecisionTreeClassifier, KNNClassifier,
    RandomForestClassifier, SVMClassifier, available_variants, create_classifier
)
from models.neural_network import NeuralNetworkClassifier
from models.evaluation import EvaluationResult, CrossValidator, cross_validate, evaluate_classifiers, select_best
from models.tuning import ParameterRange, HyperparameterSweeper, TunedModel, as_parameter_range


def make_dataset(n_samples=60, n_features=5, random_state=42, name='synthetic'):
    X, y = make_classification(
        n_samples=n_samples,
        n_features=n_features,
        n_informative=3,
        n_redundant=0,
        n_classes=2,
        random_state=random_state
    )
    return Dataset(X, y, name=name)


def fake_result(score, name='model'):
    result = EvaluationResult.from_predictions(np.array([0, 1]), np.array([0, 1]), [0, 1], model_name=name)
    return dataclasses.replace(result, weighted_f_measure=score)


class TestClassifiers(unittest.TestCase):

    def setUp(self):
        self.dataset = make_dataset(n_samples=200, n_features=10)

    def test_basic_classifier_training(self):
        """Wrappers train and predict correctly."""
        clf = RandomForestClassifier(n_estimators=10)
        clf.train(self.dataset.X, self.dataset.y)

        preds = clf.predict(self.dataset.X)
        self.assertEqual(len(preds), 200)
        self.assertGreater(np.mean(preds == self.dataset.y), 0.6)

    def test_neural_network_scaling(self):
        """NN handles internal scaling and training."""
        nn = NeuralNetworkClassifier(hidden_layer_sizes=(10,), max_iter=200)

        # Unscaled data (large magnitude) checks the internal scaler
        X_large = self.dataset.X * 1000
        nn.train(X_large, self.dataset.y)

        proba = nn.predict_proba(X_large)
        self.assertEqual(proba.shape, (200, 2))
        np.testing.assert_allclose(proba.sum(axis=1), 1.0)

    def test_with_params_returns_new_instance(self):
        knn = KNNClassifier(n_neighbors=1)
        tuned = knn.with_params(n_neighbors=5)

        self.assertIsNot(tuned, knn)
        self.assertEqual(tuned.get_params()['n_neighbors'], 5)
        self.assertEqual(knn.get_params()['n_neighbors'], 1)
        self.assertFalse(tuned.is_trained)

    def test_with_params_does_not_share_trained_state(self):
        tree = DecisionTreeClassifier().train(self.dataset.X, self.dataset.y)
        tuned = tree.with_params(min_samples_leaf=5)
        self.assertTrue(tree.is_trained)
        self.assertFalse(tuned.is_trained)
        self.assertIsNot(tuned.model, tree.model)

    def test_with_params_rejects_unknown_parameter(self):
        with self.assertRaises(ModelTrainingError):
            KNNClassifier().with_params(not_a_parameter=3)

    def test_training_failure_is_wrapped(self):
        knn = KNNClassifier(n_neighbors=500)
        with self.assertRaises(ModelTrainingError):
            knn.train(self.dataset.X, self.dataset.y)

    def test_predict_before_training(self):
        with self.assertRaises(ValueError):
            SVMClassifier().predict(self.dataset.X)

    def test_create_classifier(self):
        self.assertIn('neural_network', available_variants())
        clf = create_classifier('svm', kernel='linear')
        self.assertIsInstance(clf, SVMClassifier)
        self.assertEqual(clf.variant, 'svm')
        self.assertEqual(clf.get_params()['kernel'], 'linear')

        with self.assertRaises(ValueError):
            create_classifier('naive_bayes')

    def test_save_and_load(self):
        clf = DecisionTreeClassifier().train(self.dataset.X, self.dataset.y)
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'tree.joblib')
            clf.save(path)
            loaded = Classifier.load(path)
        np.testing.assert_array_equal(loaded.predict(self.dataset.X), clf.predict(self.dataset.X))


class TestEvaluation(unittest.TestCase):

    def setUp(self):
        self.dataset = make_dataset()

    def test_metrics_from_predictions(self):
        result = EvaluationResult.from_predictions(
            np.array(['a', 'a', 'b', 'b']), np.array(['a', 'b', 'b', 'b']), ['a', 'b']
        )
        np.testing.assert_allclose(result.precision, [1.0, 2 / 3])
        np.testing.assert_allclose(result.recall, [0.5, 1.0])
        self.assertAlmostEqual(result.weighted_f_measure, (2 / 3 * 2 + 0.8 * 2) / 4)
        self.assertAlmostEqual(result.accuracy, 0.75)
        np.testing.assert_array_equal(result.confusion_matrix, [[1, 1], [0, 2]])
        with self.assertRaises(ValueError):
            result.confusion_matrix[0, 0] = 5

    def test_two_fold_evaluation(self):
        result = cross_validate(DecisionTreeClassifier(), self.dataset, folds=2)

        self.assertEqual(result.n_folds, 2)
        self.assertEqual(result.seed, 1)
        self.assertEqual(len(result.classes), 2)
        self.assertEqual(result.confusion_matrix.sum(), self.dataset.n_rows)
        self.assertGreaterEqual(result.weighted_f_measure, 0.0)
        self.assertLessEqual(result.weighted_f_measure, 1.0)

    def test_evaluation_is_deterministic(self):
        first = cross_validate(RandomForestClassifier(n_estimators=10), self.dataset, folds=5, seed=1)
        second = cross_validate(RandomForestClassifier(n_estimators=10), self.dataset, folds=5, seed=1)

        self.assertEqual(first.weighted_f_measure, second.weighted_f_measure)
        np.testing.assert_array_equal(first.confusion_matrix, second.confusion_matrix)

    def test_parallel_folds_match_serial(self):
        serial = CrossValidator(folds=5, n_jobs=1).evaluate(KNNClassifier(n_neighbors=3), self.dataset)
        with parallel_backend('threading'):
            parallel = CrossValidator(folds=5, n_jobs=2).evaluate(KNNClassifier(n_neighbors=3), self.dataset)
        np.testing.assert_array_equal(serial.confusion_matrix, parallel.confusion_matrix)

    def test_model_is_not_trained_in_place(self):
        tree = DecisionTreeClassifier()
        cross_validate(tree, self.dataset, folds=3)
        self.assertFalse(tree.is_trained)

    def test_empty_dataset(self):
        empty = Dataset(np.empty((0, 3)), np.empty(0))
        with self.assertRaises(InvalidDatasetError):
            cross_validate(DecisionTreeClassifier(), empty, folds=2)

    def test_more_folds_than_rows(self):
        small = self.dataset.subset(range(8))
        with self.assertRaises(InvalidDatasetError):
            cross_validate(DecisionTreeClassifier(), small, folds=10)

    def test_one_row_per_label_two_folds(self):
        tiny = Dataset([[0.0], [1.0]], ['a', 'b'], name='tiny')
        result = cross_validate(DecisionTreeClassifier(), tiny, folds=2)

        self.assertEqual(result.confusion_matrix.sum(), 2)
        self.assertEqual(result.classes, ('a', 'b'))

    def test_more_folds_than_largest_class(self):
        small = make_dataset(n_samples=15)
        small = Dataset(small.X, np.array([0] * 7 + [1] * 8), name='small')
        validator = CrossValidator(folds=10)

        tasks = validator.split(DecisionTreeClassifier(), small)
        self.assertEqual(len(tasks), 10)
        self.assertTrue(all(len(t.test_index) > 0 for t in tasks))
        np.testing.assert_array_equal(
            np.sort(np.concatenate([t.test_index for t in tasks])), np.arange(15)
        )

        result = validator.evaluate(DecisionTreeClassifier(), small)
        self.assertEqual(result.confusion_matrix.sum(), 15)
        self.assertEqual(result.support, (7, 8))

        again = validator.evaluate(DecisionTreeClassifier(), small)
        np.testing.assert_array_equal(result.confusion_matrix, again.confusion_matrix)

    def test_too_few_folds(self):
        with self.assertRaises(ValueError):
            CrossValidator(folds=1)

    def test_fold_failure_names_dataset_and_fold(self):
        with self.assertRaises(ModelTrainingError) as ctx:
            cross_validate(KNNClassifier(n_neighbors=40), self.dataset, folds=2)
        self.assertIn('synthetic', str(ctx.exception))
        self.assertIn('fold 1/2', str(ctx.exception))

    def test_evaluate_classifiers_keeps_order(self):
        data = make_dataset(n_samples=100)
        classifiers = [DecisionTreeClassifier(), KNNClassifier(n_neighbors=3)]
        results = evaluate_classifiers(classifiers, data, folds=10)

        self.assertEqual([r.model_name for r in results], ['DecisionTree', 'KNN'])
        self.assertTrue(all(r.n_folds == 10 for r in results))

    def test_select_best(self):
        results = [fake_result(0.72, 'a'), fake_result(0.85, 'b')]
        self.assertEqual(select_best(results), 1)

    def test_select_best_single_result(self):
        self.assertEqual(select_best([fake_result(0.0)]), 0)

    def test_select_best_ties_go_to_first(self):
        results = [fake_result(0.5), fake_result(0.9), fake_result(0.9)]
        self.assertEqual(select_best(results), 1)

    def test_select_best_empty(self):
        with self.assertRaises(EmptyResultSetError):
            select_best([])


class TestParameterRange(unittest.TestCase):

    def test_integer_range(self):
        self.assertEqual(ParameterRange('n', 50, 250, 5, integer=True).values(), [50, 100, 150, 200, 250])

    def test_single_step_uses_lower_bound(self):
        self.assertEqual(ParameterRange('C', 0.1, 10.1, 1).values(), [0.1])

    def test_integer_duplicates_dropped(self):
        self.assertEqual(ParameterRange('k', 1, 3, 5, integer=True).values(), [1, 2, 3])

    def test_float_points(self):
        self.assertEqual(ParameterRange('a', 0.0, 0.04, 5).values(), [0.0, 0.01, 0.02, 0.03, 0.04])

    def test_data_dependent_bound(self):
        dataset = make_dataset(n_features=3)
        r = ParameterRange('max_features', 1, lambda d: d.n_features, 3, integer=True)
        self.assertEqual(r.values(dataset), [1, 2, 3])
        with self.assertRaises(ValueError):
            r.values()

    def test_invalid_ranges(self):
        with self.assertRaises(ValueError):
            ParameterRange('x', 5, 1, 3).values()
        with self.assertRaises(ValueError):
            ParameterRange('x', 1, 5, 0).values()

    def test_tuple_range(self):
        self.assertTrue(as_parameter_range('k', (1, 15, 15)).integer)
        self.assertFalse(as_parameter_range('C', (0.1, 1.0, 3)).integer)
        with self.assertRaises(ValueError):
            as_parameter_range('C', (0.1, 1.0))


class TestHyperparameterSweeper(unittest.TestCase):

    def setUp(self):
        self.dataset = make_dataset()

    def test_sweep_visits_every_grid_point(self):
        sweeper = HyperparameterSweeper(folds=3, refit=False)
        visited = []

        def evaluate(candidate, dataset):
            n = candidate.get_params()['n_estimators']
            visited.append(n)
            return fake_result(0.9 if n == 150 else 0.5, candidate.name)

        with mock.patch.object(sweeper.validator, 'evaluate', side_effect=evaluate):
            tuned = sweeper.sweep(AdaBoostClassifier(), self.dataset)

        self.assertEqual(visited, [50, 100, 150, 200, 250])
        self.assertEqual(tuned.params, {'n_estimators': 150})
        self.assertEqual(tuned.model.get_params()['n_estimators'], 150)
        self.assertFalse(tuned.model.is_trained)
        self.assertEqual(len(tuned.history), 5)
        self.assertTrue(tuned.completed)

    def test_sweep_keeps_first_best_on_ties(self):
        sweeper = HyperparameterSweeper(folds=3, refit=False)
        with mock.patch.object(sweeper.validator, 'evaluate', return_value=fake_result(0.7)):
            tuned = sweeper.sweep(KNNClassifier(), self.dataset, {'n_neighbors': (1, 5, 3)})
        self.assertEqual(tuned.params, {'n_neighbors': 1})

    def test_grid_order_first_range_outermost(self):
        sweeper = HyperparameterSweeper()
        grid = sweeper.grid(SVMClassifier(kernel='rbf'), self.dataset, {
            'C': (1.0, 2.0, 2),
            'gamma': (0.1, 0.2, 2),
        })
        self.assertEqual(grid, [
            {'C': 1.0, 'gamma': 0.1}, {'C': 1.0, 'gamma': 0.2},
            {'C': 2.0, 'gamma': 0.1}, {'C': 2.0, 'gamma': 0.2},
        ])

    def test_conditional_range_skipped(self):
        sweeper = HyperparameterSweeper()
        rbf = sweeper.grid(SVMClassifier(kernel='rbf'), self.dataset)
        linear = sweeper.grid(SVMClassifier(kernel='linear'), self.dataset)

        self.assertEqual(len(rbf), 100)
        self.assertEqual(len(linear), 10)
        self.assertNotIn('gamma', linear[0])

    def test_sweep_stays_within_ranges(self):
        sweeper = HyperparameterSweeper(folds=3)
        forest = RandomForestClassifier()
        tuned = sweeper.sweep(forest, self.dataset)

        self.assertIsInstance(tuned, TunedModel)
        self.assertIn(tuned.params['n_estimators'], [5, 10, 15, 20])
        # max_features is bounded by the 5 available features
        self.assertTrue(1 <= tuned.params['max_features'] <= 5)
        self.assertTrue(tuned.model.is_trained)
        self.assertFalse(forest.is_trained)
        self.assertEqual(forest.get_params()['n_estimators'], 100)

        frame = tuned.history_frame()
        self.assertEqual(len(frame), 16)
        self.assertEqual(
            list(frame.columns), ['param_n_estimators', 'param_max_features', 'weighted_f_measure']
        )

    def test_unsupported_model(self):
        class CustomClassifier(Classifier):
            variant = 'custom'

        custom = CustomClassifier('Custom', DecisionTreeClassifier().model)
        with self.assertRaises(UnsupportedModelError):
            HyperparameterSweeper().sweep(custom, self.dataset)

    def test_training_failure_aborts_sweep(self):
        sweeper = HyperparameterSweeper(folds=2)
        with self.assertRaises(ModelTrainingError) as ctx:
            sweeper.sweep(KNNClassifier(), self.dataset, {'n_neighbors': (50, 50, 1)})
        self.assertIn("'n_neighbors': 50", str(ctx.exception))

    def test_should_stop_ends_sweep_early(self):
        sweeper = HyperparameterSweeper(folds=3, refit=False)
        tuned = sweeper.sweep(
            DecisionTreeClassifier(), self.dataset, should_stop=lambda: True
        )
        self.assertFalse(tuned.completed)
        self.assertEqual(len(tuned.history), 1)
        self.assertEqual(tuned.params, {'min_samples_leaf': 2})


if __name__ == '__main__':
    unittest.main()
