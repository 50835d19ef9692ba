"""
Prometheus-compatible metrics for observability.

Tracks the booking funnel and remote dependency health:
- Booking submissions (by outcome)
- Referral code checks (by result)
- Pincode serviceability checks (by result)
- Upstream requests (by service and outcome)

Usage:
    from hellofixo.lib.metrics import get_metrics_collector

    metrics = get_metrics_collector()
    metrics.increment_bookings(status="success")
    metrics.increment_upstream(service="supabase", outcome="ok")

    # Export for Prometheus
    prometheus_output = metrics.export_prometheus()
"""

from typing import Dict, Tuple
from threading import Lock


class MetricsCollector:
    """
    Prometheus-style metrics collector for the booking backend.

    Counters:
    - bookings_submitted_total: Booking submissions (labels: status)
    - referral_checks_total: Referral verifications (labels: result)
    - serviceability_checks_total: Pincode checks (labels: result)
    - upstream_requests_total: Remote calls (labels: service, outcome)

    Thread-safe for concurrent increments.
    """

    HELP_TEXTS = {
        "bookings_submitted_total": "Total number of booking submissions",
        "referral_checks_total": "Total number of referral code verifications",
        "serviceability_checks_total": "Total number of pincode serviceability checks",
        "upstream_requests_total": "Total number of requests made to remote services",
    }

    def __init__(self):
        self._lock = Lock()

        # key = (metric_name, labels_tuple), value = count
        self._counters: Dict[Tuple[str, Tuple[Tuple[str, str], ...]], int] = {}

    def _get_counter_key(self, metric_name: str, labels: Dict[str, str]) -> Tuple[str, Tuple[Tuple[str, str], ...]]:
        """Generate unique key for counter with sorted labels."""
        sorted_labels = tuple(sorted(labels.items()))
        return (metric_name, sorted_labels)

    def _increment(self, metric_name: str, labels: Dict[str, str], amount: int = 1):
        """Thread-safe increment of counter."""
        key = self._get_counter_key(metric_name, labels)
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + amount

    def _get_value(self, metric_name: str, labels: Dict[str, str]) -> int:
        key = self._get_counter_key(metric_name, labels)
        with self._lock:
            return self._counters.get(key, 0)

    # ===== Funnel Metrics =====

    def increment_bookings(self, status: str, amount: int = 1):
        """
        Increment booking submissions counter.

        Args:
            status: Outcome (success, error, invalid)
            amount: Increment amount
        """
        self._increment("bookings_submitted_total", {"status": status.lower()}, amount)

    def increment_referral_checks(self, result: str, amount: int = 1):
        """Increment referral checks counter (result: success, error)."""
        self._increment("referral_checks_total", {"result": result.lower()}, amount)

    def increment_serviceability_checks(self, result: str, amount: int = 1):
        """Increment serviceability checks counter (result: serviceable, unserviceable, failed)."""
        self._increment("serviceability_checks_total", {"result": result.lower()}, amount)

    # ===== Dependency Metrics =====

    def increment_upstream(self, service: str, outcome: str, amount: int = 1):
        """
        Increment upstream requests counter.

        Args:
            service: Remote service name (supabase, postal, geocoder)
            outcome: ok, client_error, retry, failed
            amount: Increment amount
        """
        labels = {
            "service": service.lower(),
            "outcome": outcome.lower(),
        }
        self._increment("upstream_requests_total", labels, amount)

    # ===== Export =====

    def export_prometheus(self) -> str:
        """
        Export all metrics in Prometheus text format.

        Returns:
            Prometheus-compatible text output
        """
        output_lines = []

        metrics_by_name: Dict[str, list] = {}
        with self._lock:
            for (metric_name, labels_tuple), value in self._counters.items():
                metrics_by_name.setdefault(metric_name, []).append((dict(labels_tuple), value))

        for metric_name in sorted(metrics_by_name.keys()):
            help_text = self.HELP_TEXTS.get(metric_name, "Counter metric")
            output_lines.append(f"# HELP {metric_name} {help_text}")
            output_lines.append(f"# TYPE {metric_name} counter")

            for labels_dict, value in sorted(metrics_by_name[metric_name], key=lambda x: str(x[0])):
                labels_str = ",".join([f'{k}="{v}"' for k, v in sorted(labels_dict.items())])
                output_lines.append(f"{metric_name}{{{labels_str}}} {value}")

            output_lines.append("")

        return "\n".join(output_lines)

    def get_counter_value(self, metric_name: str, labels: Dict[str, str]) -> int:
        """Get current value of a specific counter."""
        return self._get_value(metric_name, labels)

    def reset_all(self):
        """Reset all counters (for testing)."""
        with self._lock:
            self._counters.clear()


# Global singleton instance
_metrics_collector: MetricsCollector | None = None
_metrics_lock = Lock()


def get_metrics_collector() -> MetricsCollector:
    """
    Get global metrics collector singleton.

    Returns:
        MetricsCollector instance
    """
    global _metrics_collector
    if _metrics_collector is None:
        with _metrics_lock:
            if _metrics_collector is None:
                _metrics_collector = MetricsCollector()
    return _metrics_collector


def reset_metrics():
    """Reset global metrics collector (for testing)."""
    with _metrics_lock:
        if _metrics_collector is not None:
            _metrics_collector.reset_all()
