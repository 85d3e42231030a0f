"""Event-driven alerting and notification pipeline."""

from alerting.factory import create_pipeline
from alerting.pipeline import AlertPipeline
from alerting.worker import AlertWorker

__all__ = [
    "AlertPipeline",
    "AlertWorker",
    "create_pipeline",
]

__version__ = "1.0.0"
