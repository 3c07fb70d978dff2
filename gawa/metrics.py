import enum

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

from .constants import APPLICATION


class Outcome(enum.Enum):
    SUCCEEDED = "succeeded"
    INVALID = "invalid"
    ERRORED = "errored"


class RelayMetrics:
    """Contadores do relay, registrados num CollectorRegistry próprio.

    Criado uma vez por app e compartilhado por todas as requisições; os
    contadores do prometheus_client já são seguros para incremento concorrente.
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        self.registry = registry or CollectorRegistry()
        self.notifications_errored = Counter(
            "notifications_errored",
            "Total number of alert notifications that errored during processing and should be retried",
            namespace=APPLICATION,
            registry=self.registry,
        )
        self.notifications_invalid = Counter(
            "notifications_invalid",
            "Total number of invalid alert notifications received",
            namespace=APPLICATION,
            registry=self.registry,
        )
        self.notifications_received = Counter(
            "notifications_received",
            "Total number of alert notifications received",
            namespace=APPLICATION,
            registry=self.registry,
        )
        self.http_requests = Counter(
            "http_requests",
            "Total number of HTTP requests by handler and status code",
            ["handler", "code"],
            namespace=APPLICATION,
            registry=self.registry,
        )
        self.http_request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request latency by handler",
            ["handler"],
            namespace=APPLICATION,
            registry=self.registry,
        )

    def received(self):
        self.notifications_received.inc()

    def record(self, outcome: Outcome):
        # sucesso conta apenas em "received"
        if outcome is Outcome.INVALID:
            self.notifications_invalid.inc()
        elif outcome is Outcome.ERRORED:
            self.notifications_errored.inc()

    def observe_request(self, handler: str, code: int, elapsed: float):
        self.http_requests.labels(handler=handler, code=str(code)).inc()
        self.http_request_duration.labels(handler=handler).observe(elapsed)

    def exposition(self) -> bytes:
        return generate_latest(self.registry)
