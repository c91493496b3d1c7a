"""
Prometheus metrics for the export pipeline.
"""

from prometheus_client import Counter, Histogram

EXPORT_PATHS = Counter(
    'stroll_export_path_total',
    'Exports by terminal path',
    ['path', 'kind']
)

EXPORT_LATENCY = Histogram(
    'stroll_export_latency_seconds',
    'Submit-to-artifact latency',
    ['path'],
    buckets=[0.05, 0.1, 0.5, 1, 2.5, 5, 10, 30, 60, 120, 300]
)

REMOTE_FAILURES = Counter(
    'stroll_remote_failures_total',
    'Compositing service failures that triggered fallback',
    ['reason']
)

PROBE_RESULTS = Counter(
    'stroll_probe_results_total',
    'Processing availability probe outcomes',
    ['result']
)

PERSIST_RESULTS = Counter(
    'stroll_persist_results_total',
    'Asset persistence guard outcomes',
    ['result']
)

BAKE_RESULTS = Counter(
    'stroll_bake_total',
    'Advanced editor bake outcomes',
    ['result']
)

UPLOAD_FAILURES = Counter(
    'stroll_upload_failures_total',
    'Terminal upload failures by classification',
    ['kind']
)
