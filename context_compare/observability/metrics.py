import threading
from typing import Dict, List

from context_compare.models import TokenUsage


_lock = threading.Lock()

QUERY_MODES = ("load_all", "smart")


def _empty_mode_stats() -> Dict:

    return {
        "queries": 0,
        "total_cost": 0.0,
        "total_docs_loaded": 0,
        "total_input_tokens": 0,
        "total_output_tokens": 0,
        "total_cache_creation_tokens": 0,
        "total_cache_read_tokens": 0,
        "selection_fallbacks": 0,
        "latencies": [],
    }


def percentile(latencies: List[float], p: float) -> float:

    if not latencies:
        return 0.0

    sorted_latencies = sorted(latencies)

    index = int(len(sorted_latencies) * p / 100)

    index = min(index, len(sorted_latencies) - 1)

    return sorted_latencies[index]


class MetricsTracker:
    """
    In-process request counters plus per-mode query statistics, so the two
    query strategies can be compared on cost, latency and cache use.
    """

    def __init__(self):

        self._metrics: Dict = {}
        self.reset()

    def reset(self):

        with _lock:

            self._metrics = {
                "total_requests": 0,
                "successful_requests": 0,
                "failed_requests": 0,
                "total_latency": 0.0,
                "avg_latency": 0.0,
                "modes": {mode: _empty_mode_stats() for mode in QUERY_MODES},
            }

    def record_success(self, latency: float):

        with _lock:

            self._metrics["total_requests"] += 1
            self._metrics["successful_requests"] += 1
            self._metrics["total_latency"] += latency
            self._metrics["avg_latency"] = (
                self._metrics["total_latency"]
                / self._metrics["successful_requests"]
            )

    def record_failure(self):

        with _lock:

            self._metrics["total_requests"] += 1
            self._metrics["failed_requests"] += 1

    def record_query(
        self,
        mode: str,
        latency_ms: int,
        cost: float,
        docs_loaded: int,
        usage: TokenUsage,
        selection_fallback: bool = False,
    ):

        with _lock:

            stats = self._metrics["modes"][mode]

            stats["queries"] += 1
            stats["total_cost"] += cost
            stats["total_docs_loaded"] += docs_loaded
            stats["total_input_tokens"] += usage.input_tokens
            stats["total_output_tokens"] += usage.output_tokens
            stats["total_cache_creation_tokens"] += usage.cache_creation_input_tokens
            stats["total_cache_read_tokens"] += usage.cache_read_input_tokens
            stats["latencies"].append(latency_ms)

            if selection_fallback:
                stats["selection_fallbacks"] += 1

    def get_metrics(self) -> Dict:

        with _lock:

            modes = {}

            for mode, stats in self._metrics["modes"].items():

                queries = stats["queries"]
                latencies = stats["latencies"]

                modes[mode] = {
                    "queries": queries,
                    "total_cost": stats["total_cost"],
                    "avg_cost": stats["total_cost"] / queries if queries else 0.0,
                    "avg_docs_loaded": (
                        stats["total_docs_loaded"] / queries if queries else 0.0
                    ),
                    "avg_latency_ms": sum(latencies) / queries if queries else 0.0,
                    "p95_latency_ms": percentile(latencies, 95),
                    "total_input_tokens": stats["total_input_tokens"],
                    "total_output_tokens": stats["total_output_tokens"],
                    "total_cache_creation_tokens": stats["total_cache_creation_tokens"],
                    "total_cache_read_tokens": stats["total_cache_read_tokens"],
                    "selection_fallbacks": stats["selection_fallbacks"],
                }

            return {
                "total_requests": self._metrics["total_requests"],
                "successful_requests": self._metrics["successful_requests"],
                "failed_requests": self._metrics["failed_requests"],
                "avg_latency": self._metrics["avg_latency"],
                "modes": modes,
            }


metrics_tracker = MetricsTracker()
