"""Local host headroom provider backed by psutil."""

import asyncio
import logging
import time

import psutil

from quotadash.models import Provider, QueryFailure, QueryResult, QuerySuccess
from quotadash.providers.common import bar, format_duration

logger = logging.getLogger(__name__)

DISK_PATH = "/"


def _remaining(percent_used: float) -> int:
    return int(max(0.0, min(100.0, 100.0 - percent_used)) + 0.5)


def _gigabytes(size: int) -> str:
    return f"{size / (1024**3):.1f}G"


def collect_host_usage() -> str:
    """Collect memory, swap and disk headroom as provider text."""
    mem = psutil.virtual_memory()
    swap = psutil.swap_memory()
    disk = psutil.disk_usage(DISK_PATH)
    load_avg = psutil.getloadavg()
    uptime = time.time() - psutil.boot_time()

    lines = [
        f"Host         {psutil.cpu_count() or 0} cores, up {format_duration(uptime)}",
        f"Load         {load_avg[0]:.2f} {load_avg[1]:.2f} {load_avg[2]:.2f}",
        "",
    ]

    mem_left = _remaining(mem.percent)
    lines.append(
        f"Memory       {bar(mem_left)} {mem_left}% remaining "
        f"({_gigabytes(mem.used)}/{_gigabytes(mem.total)})"
    )

    if swap.total > 0:
        swap_left = _remaining(swap.percent)
        lines.append(
            f"Swap         {bar(swap_left)} {swap_left}% remaining "
            f"({_gigabytes(swap.used)}/{_gigabytes(swap.total)})"
        )
    else:
        lines.append("Swap         skipped (no swap configured)")

    disk_left = _remaining(disk.percent)
    lines.append(
        f"Disk {DISK_PATH:<7} {bar(disk_left)} {disk_left}% remaining "
        f"({_gigabytes(disk.used)}/{_gigabytes(disk.total)})"
    )
    return "\n".join(lines)


async def query_host_usage() -> QueryResult:
    try:
        output = await asyncio.to_thread(collect_host_usage)
    except (psutil.Error, OSError) as exc:
        logger.warning("host usage unavailable: %s", exc)
        return QueryFailure(error=str(exc))
    return QuerySuccess(output=output)


host_provider = Provider(id="host", label="Host", query=query_host_usage)
