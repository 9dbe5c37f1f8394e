#!/usr/bin/env python3
"""
FFI Overhead Benchmarks for the imgal Python bindings

Measures the cost of calling native imgal operations through the bridge
(argument checking, arena copy, ctypes call) against the same computation
in pure Python, across several array sizes.

Requires a native library (bundled, or set IMGAL_LIB_PATH).

Run with:
    python3 benchmarks/ffi_overhead.py
"""

import json
import os
import sys
import timeit
from array import array
from typing import Callable, Dict, List

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import imgal


SIZES = [("small", 16), ("medium", 4096), ("large", 1_000_000)]


class BenchmarkResult:
    """Stores benchmark results for a single operation."""

    def __init__(self, name: str, variant: str, size: str):
        self.name = name
        self.variant = variant
        self.size = size
        self.times: List[float] = []

    def add_time(self, time_ns: float):
        """Add a measurement in nanoseconds."""
        self.times.append(time_ns)

    def avg_time_ns(self) -> float:
        return sum(self.times) / len(self.times) if self.times else 0

    def min_time_ns(self) -> float:
        return min(self.times) if self.times else 0

    def max_time_ns(self) -> float:
        return max(self.times) if self.times else 0

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "variant": self.variant,
            "size": self.size,
            "avg_time_ns": round(self.avg_time_ns(), 2),
            "min_time_ns": round(self.min_time_ns(), 2),
            "max_time_ns": round(self.max_time_ns(), 2),
            "samples": len(self.times),
        }


def _python_sum(values) -> float:
    return sum(values, 0.0)


def _python_midpoint(values, delta_x) -> float:
    return delta_x * sum(values, 0.0)


class BenchmarkSuite:
    """Runs FFI overhead benchmarks."""

    def __init__(self):
        self.results: List[BenchmarkResult] = []

    def _measure(self, name: str, variant: str, size: str, op: Callable[[], float], iterations: int):
        times = []
        for _ in range(iterations):
            start = timeit.default_timer()
            op()
            times.append((timeit.default_timer() - start) * 1e9)  # Convert to ns

        result = BenchmarkResult(name, variant, size)
        for t in times:
            result.add_time(t)
        self.results.append(result)
        print(f"  {name:<10} {variant:<14} {result.avg_time_ns():>14.0f} ns")

    def benchmark_size(self, size: str, length: int, iterations: int):
        values = [float(i % 97) for i in range(length)]
        buffer = array("d", values)

        self._measure("sum", "native list", size, lambda: imgal.sum(values), iterations)
        self._measure("sum", "native buffer", size, lambda: imgal.sum(buffer), iterations)
        self._measure("sum", "python", size, lambda: _python_sum(values), iterations)
        self._measure("midpoint", "native list", size, lambda: imgal.midpoint(values, 0.5), iterations)
        self._measure("midpoint", "python", size, lambda: _python_midpoint(values, 0.5), iterations)

    def run_all(self):
        """Run all benchmarks."""
        print("=" * 70)
        print("imgal Python FFI Overhead Benchmarks")
        print("=" * 70)

        # First call loads the library and binds the catalog
        start = timeit.default_timer()
        imgal.get_bridge().initialize()
        print(f"\nInitialization: {(timeit.default_timer() - start) * 1e3:.2f} ms")

        for size, length in SIZES:
            iterations = 5 if length > 100_000 else 200
            print(f"\n{size} ({length} elements, {iterations} iterations)")
            self.benchmark_size(size, length, iterations)

        print("\nScalar call: omega")
        self._measure("omega", "native", "scalar", lambda: imgal.omega(12.5), 1000)

    def export_json(self, filename: str = "ffi_overhead_results.json"):
        """Export results to JSON file."""
        data = {
            "benchmark": "imgal Python FFI Overhead",
            "timestamp": __import__("datetime").datetime.now().isoformat(),
            "results": [r.to_dict() for r in self.results],
        }

        with open(filename, "w") as f:
            json.dump(data, f, indent=2)
        print(f"\nResults exported to {filename}")


def main():
    """Run benchmarks."""
    suite = BenchmarkSuite()
    suite.run_all()
    suite.export_json()


if __name__ == "__main__":
    main()
