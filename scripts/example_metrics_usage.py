#!/usr/bin/env python3
"""
Example of metric sampler usage with a simulated asyncio server.

Demonstrates:
1. Installing the extension (event loop scheduler)
2. Instrumenting request handlers
3. Reading the JSON lines the sampler writes
4. Graceful shutdown

Usage:
    python scripts/example_metrics_usage.py [log_dir]
"""

import asyncio
import random
import sys
import tempfile
from pathlib import Path

from srvmetric import MetricExtension
from srvmetric.monitoring import LoopScheduler
from srvmetric.utils.logger import MetricLogger


async def simulate_traffic(extension: MetricExtension, duration: float) -> int:
    """Serve requests with varying latencies for `duration` seconds."""

    @extension.instrument_async
    async def handle_request(latency_ms: float):
        await asyncio.sleep(latency_ms / 1000.0)

    served = 0
    loop = asyncio.get_running_loop()
    deadline = loop.time() + duration
    while loop.time() < deadline:
        # Mostly fast, occasionally slower than the 100ms apdex threshold
        latency = random.choice([10, 20, 30, 50, 80, 150, 250])
        await handle_request(latency)
        served += 1
    return served


async def main(log_dir: str) -> None:
    MetricLogger({'log_level': 'INFO'})

    extension = MetricExtension(scheduler=LoopScheduler())
    extension.on_install({
        'name': 'example-server',
        'log_dir': log_dir,
        'log_interval': 2,
    })

    try:
        served = await simulate_traffic(extension, duration=7.0)
    finally:
        await extension.on_shutdown_async()

    print(f"\nServed {served} requests. Records written to {log_dir}:")
    for path in sorted(Path(log_dir).glob('*-metric.*.log')):
        print(f"\n  {path.name}")
        for line in path.read_text().splitlines():
            print(f"    {line}")


if __name__ == "__main__":
    target = sys.argv[1] if len(sys.argv) > 1 else tempfile.mkdtemp(prefix='srvmetric-')
    asyncio.run(main(target))
