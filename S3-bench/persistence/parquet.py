"""
Parquet persistence for benchmark metrics documents.
"""

import os
import logging
import threading
from typing import List, Optional
from datetime import datetime

import pandas as pd

from persistence.record import MetricsDocument
from common.metrics_utils import summarize_documents

logger = logging.getLogger(__name__)


class ParquetPersistence:
    """Thread-safe in-memory store of metrics documents with Parquet export.

    Every document emitted during a run is kept here, whether or not the
    metrics backend accepted it, so a run can always be analysed offline.

    Attributes:
        output_dir: Directory where Parquet files will be saved
        documents: Documents accumulated during the run
    """

    def __init__(self, output_dir: str = "results"):
        """Initialize Parquet persistence.

        Args:
            output_dir: Directory for saving Parquet files (default: 'results')
        """
        self.output_dir: str = output_dir
        self.documents: List[MetricsDocument] = []
        self._lock = threading.Lock()

    def store_document(self, document: MetricsDocument) -> None:
        """Store a metrics document in memory.

        Args:
            document: Metrics document to store
        """
        with self._lock:
            self.documents.append(document)

    def to_dataframe(self) -> pd.DataFrame:
        """Convert all stored documents to a DataFrame (one row per document)."""
        with self._lock:
            rows = [document.to_dict() for document in self.documents]
        return pd.DataFrame(rows, columns=[
            'latency', 'latency_exceeded', 'timestamp', 'workload', 'size',
            'size_in_bytes', 'throughput', 'object_name', 'source', 'failed', 'error',
        ])

    def summarize(self) -> dict:
        """Aggregate statistics over every stored document."""
        return summarize_documents(self.to_dataframe())

    def save_to_file(self, filename_prefix: str = "benchmark") -> Optional[str]:
        """Save all documents to a Parquet file.

        Args:
            filename_prefix: Prefix for the generated filename (default: 'benchmark')

        Returns:
            Path to the saved file, or None if no documents to save
        """
        if not self.documents:
            return None

        logger.info(f"Saving {len(self.documents)} documents to file")
        df = self.to_dataframe()

        os.makedirs(self.output_dir, exist_ok=True)

        # Generate filename
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = f"{filename_prefix}_{timestamp}.parquet"
        filepath = os.path.join(self.output_dir, filename)

        # Save to Parquet
        df.to_parquet(filepath, index=False)

        return filepath
