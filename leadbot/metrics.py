"""Prometheus metrics."""

from prometheus_client import Counter, Histogram

chat_requests_total = Counter('chat_requests_total', 'Total chat requests', ['status'])
chat_request_duration = Histogram('chat_request_duration_seconds', 'Chat request duration')
lead_classifications_total = Counter('lead_classifications_total', 'Completed lead classifications', ['status'])
generation_errors_total = Counter('generation_errors_total', 'Failed chat turns by error code', ['code'])
