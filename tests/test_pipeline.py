import os
import tempfile
import unittest
import numpy as np
import pandas as pd
from sklearn.datasets import make_classification

from data.dataset import Dataset
from models.classifiers import Classifier
from pipeline.config import SelectionConfig
from pipeline.selection import ModelSelectionPipeline
from pipeline.main import main, load_config

REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def make_config(output_dir, **overrides):
    values = dict(
        output_dir=output_dir,
        classifiers=['decision_tree', 'knn'],
        search_spaces={
            'decision_tree': {'min_samples_leaf': [2, 6, 3]},
            'knn': {'n_neighbors': [1, 5, 3]},
        },
        tuning_folds=3,
        cv_folds=3,
        verbose=False,
    )
    values.update(overrides)
    return SelectionConfig.from_dict(values)


class TestSelectionConfig(unittest.TestCase):

    def test_yaml_round_trip(self):
        config = SelectionConfig(data_file='data.csv', classifiers=['svm'], cv_folds=5)
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'config.yaml')
            config.to_yaml(path)
            loaded = SelectionConfig.from_yaml(path)

        self.assertEqual(loaded, config)

    def test_unknown_key(self):
        with self.assertRaises(ValueError):
            SelectionConfig.from_dict({'cv_fold': 5})

    def test_validation_errors(self):
        invalid = [
            {'cv_folds': 1},
            {'classifiers': []},
            {'classifiers': ['naive_bayes']},
            {'classifiers': ['knn', 'knn']},
            {'search_spaces': {'knn': {'n_neighbors': [1, 5]}}},
            {'optimize_threshold': True, 'thresholds': [0.5, 1.2]},
            {'optimize_threshold': True, 'thresholds': []},
            {'optimize_threshold': True, 'thresholds': [0.3, 'high']},
            {'optimize_threshold': True, 'thresholds': [True]},
            {'export_format': 'json'},
        ]
        for values in invalid:
            with self.subTest(values=values):
                with self.assertRaises(ValueError):
                    SelectionConfig.from_dict(values)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            SelectionConfig.from_yaml('does_not_exist.yaml')


class TestModelSelectionPipeline(unittest.TestCase):

    def setUp(self):
        X, y = make_classification(
            n_samples=90,
            n_features=6,
            n_informative=3,
            n_redundant=0,
            random_state=42
        )
        self.dataset = Dataset(X, np.where(y == 1, 'yes', 'no'), name='synthetic')
        self.tmpdir = tempfile.TemporaryDirectory()
        self.output_dir = self.tmpdir.name

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_run_selects_best_candidate(self):
        pipeline = ModelSelectionPipeline(make_config(self.output_dir))
        report = pipeline.run(self.dataset)

        self.assertEqual(len(report.results), 2)
        self.assertEqual(set(report.tuned), {'DecisionTree', 'KNN'})
        scores = [r.weighted_f_measure for r in report.results]
        self.assertEqual(report.best_result.weighted_f_measure, max(scores))
        self.assertIs(report.final_model, report.best_classifier)
        self.assertIn(report.tuned['KNN'].params['n_neighbors'], [1, 3, 5])

        comparison = report.comparison()
        self.assertEqual(list(comparison['model']), ['DecisionTree', 'KNN'])
        self.assertEqual(comparison['best'].sum(), 1)

    def test_run_with_filters_and_threshold(self):
        config = make_config(
            self.output_dir,
            filters=[{'method': 'cfs', 'search_termination': 5}],
            hyperparameter_tuning=False,
            optimize_threshold=True,
            thresholds=[0.3, 0.5, 0.7],
        )
        report = ModelSelectionPipeline(config).run(self.dataset)

        self.assertLessEqual(report.dataset.n_features, self.dataset.n_features)
        self.assertEqual(report.tuned, {})
        self.assertIsNotNone(report.threshold_model)
        self.assertIn(report.threshold_model.threshold, [0.3, 0.5, 0.7])
        self.assertIs(report.final_model, report.threshold_model)

    def test_export_writes_tables_and_model(self):
        config = make_config(self.output_dir, save_model=True)
        pipeline = ModelSelectionPipeline(config)
        report = pipeline.run(self.dataset)
        output_path = pipeline.export(report)

        files = sorted(os.listdir(output_path))
        self.assertEqual(
            files, ['metadata.csv', 'model_comparison.csv', 'sweep_decisiontree.csv', 'sweep_knn.csv']
        )
        history = pd.read_csv(os.path.join(output_path, 'sweep_knn.csv'))
        self.assertEqual(list(history['param_n_neighbors']), [1, 3, 5])

        model_path = os.path.join(self.output_dir, f"{report.best_classifier.variant}.joblib")
        self.assertTrue(os.path.exists(model_path))
        model = Classifier.load(model_path)
        self.assertTrue(model.is_trained)
        self.assertEqual(len(model.predict(self.dataset.X)), self.dataset.n_rows)

    def test_cli_reports_config_errors(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'bad.yaml')
            with open(path, 'w') as f:
                f.write("cv_folds: 1\n")
            self.assertEqual(main(['--config', path, '--quiet']), 1)

            with open(path, 'w') as f:
                f.write("optimize_threshold: true\nthresholds: [0.2, high]\n")
            self.assertEqual(main(['--config', path, '--quiet']), 1)

    def test_cli_runs_end_to_end(self):
        csv_path = os.path.join(self.output_dir, 'synthetic.csv')
        self.dataset.to_frame().to_csv(csv_path, index=False)
        config_path = os.path.join(self.output_dir, 'config.yaml')
        make_config(self.output_dir, data_file=csv_path).to_yaml(config_path)

        self.assertEqual(main(['--config', config_path, '--folds', '3', '--quiet']), 0)
        self.assertTrue(os.path.exists(os.path.join(self.output_dir, 'model_selection', 'model_comparison.csv')))


class TestBundledConfig(unittest.TestCase):

    def test_sample_config_runs(self):
        config_path = os.path.join(REPO_ROOT, 'config.yaml')
        config = load_config(config_path)
        self.assertTrue(os.path.exists(config.data_file))

        with tempfile.TemporaryDirectory() as tmp:
            self.assertEqual(main(['--config', config_path, '--output', tmp, '--quiet']), 0)
            self.assertTrue(os.path.exists(os.path.join(tmp, 'model_selection', 'model_comparison.csv')))
            self.assertTrue(any(name.endswith('.joblib') for name in os.listdir(tmp)))


if __name__ == '__main__':
    unittest.main()
