"""
Prometheus metrics
"""
from prometheus_client import (CONTENT_TYPE_LATEST, Counter, Histogram,
                               generate_latest)
from prometheus_client.registry import REGISTRY

# ============================================================================
# HTTP
# ============================================================================

http_requests_total = Counter(
    'http_requests_total',
    'Total number of HTTP requests',
    ['method', 'endpoint', 'status_code']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0)
)

# ============================================================================
# Completion endpoint
# ============================================================================

llm_requests_total = Counter(
    'llm_requests_total',
    'Total number of completion requests',
    ['model', 'status']  # status: 'success' or 'error'
)

llm_request_duration_seconds = Histogram(
    'llm_request_duration_seconds',
    'Completion request duration in seconds',
    ['model'],
    buckets=(0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0)
)

llm_tokens_total = Counter(
    'llm_tokens_total',
    'Total number of tokens reported by the completion endpoint',
    ['model', 'type']  # type: 'prompt' or 'completion'
)

llm_errors_total = Counter(
    'llm_errors_total',
    'Total number of failed completion requests',
    ['model', 'reason']
)

# ============================================================================
# Extraction runs
# ============================================================================

extraction_runs_total = Counter(
    'extraction_runs_total',
    'Total number of extraction runs by outcome',
    ['outcome', 'error_kind']  # outcome: 'properties', 'ui-generation', 'failed'
)

extraction_run_duration_seconds = Histogram(
    'extraction_run_duration_seconds',
    'Extraction run duration in seconds',
    ['outcome'],
    buckets=(0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0)
)

extraction_properties_total = Counter(
    'extraction_properties_total',
    'Total number of candidate records by validation status',
    ['status']  # status: 'validated' or 'failed'
)


def record_completion(model: str, elapsed_seconds: float, prompt_tokens: int, completion_tokens: int):
    llm_requests_total.labels(model=model, status='success').inc()
    llm_request_duration_seconds.labels(model=model).observe(elapsed_seconds)
    llm_tokens_total.labels(model=model, type='prompt').inc(prompt_tokens)
    llm_tokens_total.labels(model=model, type='completion').inc(completion_tokens)


def record_completion_error(model: str, elapsed_seconds: float, reason: str):
    llm_requests_total.labels(model=model, status='error').inc()
    llm_request_duration_seconds.labels(model=model).observe(elapsed_seconds)
    llm_errors_total.labels(model=model, reason=reason).inc()


def record_extraction(result) -> None:
    """Count one finished run from its result envelope"""
    meta = result.metadata
    if result.success:
        outcome, error_kind = meta.extraction_mode, 'none'
    else:
        outcome, error_kind = 'failed', result.error_kind.value if result.error_kind else 'unknown'
    extraction_runs_total.labels(outcome=outcome, error_kind=error_kind).inc()
    extraction_run_duration_seconds.labels(outcome=outcome).observe(meta.processing_time_ms / 1000)
    if meta.properties_validated:
        extraction_properties_total.labels(status='validated').inc(meta.properties_validated)
    if meta.properties_failed:
        extraction_properties_total.labels(status='failed').inc(meta.properties_failed)


def get_metrics() -> bytes:
    """Metrics in Prometheus text format"""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
