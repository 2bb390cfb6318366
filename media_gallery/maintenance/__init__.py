"""On-demand consistency and storage maintenance."""

from .reconcile import (
    ReconciliationEngine, OrphanScan, MissingRecord, IntegrityReport,
    CleanupResult, RepairResult, compute_integrity_score, orphan_path,
)
from .reclaim import StorageReclaimer, ReclaimResult, is_reclaim_candidate

__all__ = [
    'ReconciliationEngine', 'OrphanScan', 'MissingRecord', 'IntegrityReport',
    'CleanupResult', 'RepairResult', 'compute_integrity_score', 'orphan_path',
    'StorageReclaimer', 'ReclaimResult', 'is_reclaim_candidate',
]
