"""
Prometheus metrics for the crowdfunding API.

Tracks:
- HTTP requests by route and status
- Transactions created and status transitions
- Payment notifications by outcome
- Midtrans API calls and errors
- Campaign funding amounts
"""
from prometheus_client import Counter, Histogram

# HTTP metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status_code"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

# Transaction metrics
transactions_created_total = Counter(
    "transactions_created_total",
    "Total transactions created",
)

transaction_status_changes_total = Counter(
    "transaction_status_changes_total",
    "Total transaction status transitions",
    ["from_status", "to_status"],
)

# Notification metrics
payment_notifications_total = Counter(
    "payment_notifications_total",
    "Total payment notifications received",
    ["result"],  # processed, unverified, ignored, failed
)

payment_notification_duration_seconds = Histogram(
    "payment_notification_duration_seconds",
    "Payment notification handling duration in seconds",
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

# Midtrans API metrics
gateway_api_requests_total = Counter(
    "gateway_api_requests_total",
    "Total payment gateway API requests",
    ["operation", "status"],  # operation: create_snap, get_status
)

gateway_api_errors_total = Counter(
    "gateway_api_errors_total",
    "Total payment gateway API errors",
    ["error_type"],  # transient, permanent, rate_limit
)

gateway_api_duration_seconds = Histogram(
    "gateway_api_duration_seconds",
    "Payment gateway API call duration in seconds",
    ["operation"],
    buckets=(0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0, 7.5, 10.0),
)

# Funding metrics
campaign_funding_amount_idr = Histogram(
    "campaign_funding_amount_idr",
    "Amounts credited to campaigns in Rupiah",
    buckets=(10_000, 50_000, 100_000, 500_000, 1_000_000, 5_000_000, 10_000_000, 50_000_000),
)


class MetricsCollector:
    """Helper class for collecting metrics."""

    @staticmethod
    def record_http_request(
        method: str, path: str, status_code: int, duration_seconds: float
    ) -> None:
        http_requests_total.labels(
            method=method, path=path, status_code=str(status_code)
        ).inc()
        http_request_duration_seconds.labels(method=method, path=path).observe(
            duration_seconds
        )

    @staticmethod
    def record_transaction_created() -> None:
        transactions_created_total.inc()

    @staticmethod
    def record_status_change(from_status: str, to_status: str) -> None:
        transaction_status_changes_total.labels(
            from_status=from_status, to_status=to_status
        ).inc()

    @staticmethod
    def record_notification(result: str, duration_seconds: float) -> None:
        """Record a handled payment notification."""
        payment_notifications_total.labels(result=result).inc()
        payment_notification_duration_seconds.observe(duration_seconds)

    @staticmethod
    def record_gateway_api_call(
        operation: str, status: str, duration_seconds: float
    ) -> None:
        """Record a Midtrans API call."""
        gateway_api_requests_total.labels(operation=operation, status=status).inc()
        gateway_api_duration_seconds.labels(operation=operation).observe(duration_seconds)

    @staticmethod
    def record_gateway_api_error(error_type: str) -> None:
        gateway_api_errors_total.labels(error_type=error_type).inc()

    @staticmethod
    def record_campaign_funding(amount: int) -> None:
        campaign_funding_amount_idr.observe(amount)


# Export singleton instance
metrics = MetricsCollector()
