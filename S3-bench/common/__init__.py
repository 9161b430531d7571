"""
Common utilities for the S3 benchmark.
"""

from .phase_manager import PhaseManager, RunState
from .ledger import CleanupLedger

__all__ = ['PhaseManager', 'RunState', 'CleanupLedger']
