from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

REGISTRY = CollectorRegistry()

HTTP_REQUESTS = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "route", "status"],
    registry=REGISTRY,
)
HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "route"],
    buckets=(0.1, 0.5, 1, 2, 5),
    registry=REGISTRY,
)
CACHE_HITS = Counter("cache_hits_total", "Total number of cache hits", registry=REGISTRY)
CACHE_MISSES = Counter("cache_misses_total", "Total number of cache misses", registry=REGISTRY)
VEHICLES_CREATED = Counter("vehicles_created_total", "Total number of vehicles created", registry=REGISTRY)
ORDERS_CREATED = Counter("orders_created_total", "Total number of orders created", registry=REGISTRY)
USERS_CREATED = Counter("users_created_total", "Total number of users registered", registry=REGISTRY)
ERRORS = Counter("errors_total", "Total number of errors", ["type", "route"], registry=REGISTRY)

PRICE_RUNS = Counter("price_ingestion_runs_total", "Price ingestion runs by outcome", ["outcome"], registry=REGISTRY)
PRICE_RECORDS = Counter(
    "price_ingestion_records_total",
    "Price update records by source and result",
    ["source", "result"],
    registry=REGISTRY,
)
PRICE_INGESTION_ACTIVE = Gauge("price_ingestion_active", "1 while a price ingestion run is active", registry=REGISTRY)


def record_request(method: str, route: str, status: int, duration_seconds: float) -> None:
    HTTP_REQUESTS.labels(method=method, route=route, status=str(status)).inc()
    HTTP_REQUEST_DURATION.labels(method=method, route=route).observe(duration_seconds)


def _sample_total(metric, sample_name: str) -> float:
    total = 0.0
    for family in metric.collect():
        for sample in family.samples:
            if sample.name == sample_name:
                total += sample.value
    return total


def cache_hit_rate() -> float:
    hits = _sample_total(CACHE_HITS, "cache_hits_total")
    misses = _sample_total(CACHE_MISSES, "cache_misses_total")
    total = hits + misses
    return hits / total if total > 0 else 0.0


def average_request_latency() -> float:
    count = _sample_total(HTTP_REQUEST_DURATION, "http_request_duration_seconds_count")
    total = _sample_total(HTTP_REQUEST_DURATION, "http_request_duration_seconds_sum")
    return total / count if count > 0 else 0.0


def render_latest() -> bytes:
    return generate_latest(REGISTRY)
