"""
Results Exporters

Export model-selection results (comparison table, sweep histories, run
metadata) to Excel or CSV.
"""

from typing import Dict, Optional, Any
import pandas as pd
from pathlib import Path
from datetime import datetime
import warnings

EXCEL_SHEET_NAME_LIMIT = 31


class ResultsExporter:
    """
    Writes the outputs of a model-selection run.

    Creates either:
    - Single Excel file with one sheet per table
    - OR a directory with one CSV file per table
    """

    def __init__(
        self,
        output_path: str,
        format: str = 'csv',
        include_timestamp: bool = False,
        verbose: bool = False
    ):
        """
        Initialize results exporter.

        Args:
            output_path: Output file path (Excel) or directory (CSV)
            format: 'excel' or 'csv'
            include_timestamp: Add timestamp to filename / directory
            verbose: Print written paths
        """
        if format not in ['excel', 'csv']:
            raise ValueError(f"Format must be 'excel' or 'csv', got '{format}'")

        self.output_path = Path(output_path)
        self.format = format
        self.verbose = verbose

        if include_timestamp:
            timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
            if format == 'excel':
                suffix = self.output_path.suffix or '.xlsx'
                self.output_path = self.output_path.parent / f"{self.output_path.stem}_{timestamp}{suffix}"
            else:
                self.output_path = self.output_path / timestamp

        if format == 'excel' and self.output_path.suffix != '.xlsx':
            self.output_path = self.output_path.with_suffix('.xlsx')

    def export(
        self,
        comparison: pd.DataFrame,
        sweep_histories: Optional[Dict[str, pd.DataFrame]] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Export a model-selection run.

        Args:
            comparison: One row per candidate classifier (see EvaluationResult.to_dict)
            sweep_histories: Classifier name -> TunedModel.history_frame()
            metadata: Run metadata (dataset, folds, seed, ...)

        Returns:
            Path to the written file or directory
        """
        tables = {'Model_Comparison': comparison}
        for name, history in (sweep_histories or {}).items():
            tables[f'Sweep_{name}'] = history
        if metadata:
            tables['Metadata'] = pd.DataFrame([metadata])

        if self.format == 'excel':
            self._write_excel(tables)
        else:
            self._write_csv(tables)
        return str(self.output_path)

    def _write_excel(self, tables: Dict[str, pd.DataFrame]) -> None:
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        with pd.ExcelWriter(self.output_path, engine='openpyxl') as writer:
            for sheet_name, df in tables.items():
                if len(sheet_name) > EXCEL_SHEET_NAME_LIMIT:
                    truncated = sheet_name[:EXCEL_SHEET_NAME_LIMIT]
                    warnings.warn(
                        f"Sheet name '{sheet_name}' truncated to '{truncated}' "
                        f"(Excel limit: {EXCEL_SHEET_NAME_LIMIT} characters)"
                    )
                    sheet_name = truncated
                df.to_excel(writer, sheet_name=sheet_name, index=False)
        if self.verbose:
            print(f"Results written to: {self.output_path}")

    def _write_csv(self, tables: Dict[str, pd.DataFrame]) -> None:
        self.output_path.mkdir(parents=True, exist_ok=True)
        for table_name, df in tables.items():
            filepath = self.output_path / f"{table_name.lower()}.csv"
            df.to_csv(filepath, index=False)
            if self.verbose:
                print(f"Exported: {filepath}")
