# Benchmark driver: one dataset, three backends, timed sequentially

from .config import BenchmarkConfig, BACKEND_ORDER
from .driver import BenchmarkRecord, BenchmarkReport, run_benchmark
