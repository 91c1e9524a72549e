"""Pipeline Package - Orchestration and configuration"""

from .config import SelectionConfig
from .selection import ModelSelectionPipeline, SelectionReport

__all__ = [
    'SelectionConfig',
    'ModelSelectionPipeline',
    'SelectionReport',
]
