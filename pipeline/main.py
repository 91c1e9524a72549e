import argparse
import sys
from pathlib import Path

import pandas as pd

from data.exceptions import ModelSelectionError
from pipeline.config import SelectionConfig
from pipeline.selection import ModelSelectionPipeline


def load_config(config_name="config.yaml"):
    paths = [Path(config_name), Path(__file__).resolve().parent.parent / config_name]
    for p in paths:
        if p.exists():
            print(f"    Found config at: {p.absolute()}")
            config = SelectionConfig.from_yaml(str(p))
            data_path = Path(config.data_file)
            if config.data_file and not data_path.is_absolute() and not data_path.exists():
                beside_config = p.parent / data_path
                if beside_config.exists():
                    config.data_file = str(beside_config)
            return config
    raise FileNotFoundError(f"Config not found: {config_name}")


def build_parser():
    parser = argparse.ArgumentParser(
        description="Tune, cross-validate and select classifiers by weighted F-measure."
    )
    parser.add_argument('--config', default='config.yaml', help="YAML configuration file")
    parser.add_argument('--data', help="Dataset file (.arff or .csv); overrides data_file")
    parser.add_argument('--label', help="Label column name; overrides label_column")
    parser.add_argument('--output', help="Output directory; overrides output_dir")
    parser.add_argument('--folds', type=int, help="Cross-validation folds; overrides cv_folds")
    parser.add_argument('--no-tuning', action='store_true', help="Skip the hyper-parameter sweep")
    parser.add_argument('--threshold', action='store_true', help="Tune a decision threshold for the winner")
    parser.add_argument('--save-model', action='store_true', help="Persist the final model with joblib")
    parser.add_argument('--quiet', action='store_true', help="Only print the final table")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    print("🚀 Starting model selection...")
    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ CONFIG ERROR: {e}")
        return 1

    if args.data:
        config.data_file = args.data
    if args.label:
        config.label_column = args.label
    if args.output:
        config.output_dir = args.output
    if args.folds:
        config.cv_folds = args.folds
    if args.no_tuning:
        config.hyperparameter_tuning = False
    if args.threshold:
        config.optimize_threshold = True
    if args.save_model:
        config.save_model = True
    if args.quiet:
        config.verbose = False

    try:
        pipeline = ModelSelectionPipeline(config)
        report = pipeline.run()
        output_path = pipeline.export(report)
    except (ModelSelectionError, FileNotFoundError, ValueError) as e:
        print(f"❌ PIPELINE ERROR: {e}")
        return 1

    with pd.option_context('display.max_columns', None, 'display.width', 120):
        print("\n" + report.comparison().to_string(index=False))

    print("\n" + report.best_result.summary())
    if report.threshold_model is not None:
        print(f"\nDecision threshold: {report.threshold_model.threshold:g} "
              f"(weighted F = {report.threshold_model.result.weighted_f_measure:.4f})")
    print(f"\n✅ Results written to: {output_path}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
