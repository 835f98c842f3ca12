import asyncio
import logging
from typing import Optional

from schematic_records.client import SchematicClient
from schematic_records.exceptions import RecordStoreError

logger = logging.getLogger(__name__)


async def run_pruner(
    client: SchematicClient,
    interval_ms: Optional[int] = None,
    stop: Optional[asyncio.Event] = None,
) -> int:
    """
    Периодическая чистка: первый проход сразу, далее каждые `interval_ms`
    (по умолчанию `prune` из config.json), пока не выставлен `stop`.
    Ошибка одного прохода логируется, цикл продолжается.
    Возвращает число выполненных проходов.
    """
    if interval_ms is None:
        interval_ms = client.service.prune
    if interval_ms <= 0:
        raise ValueError("interval_ms must be positive")
    stop = stop or asyncio.Event()
    sweeps = 0
    logger.info(f"Pruner started, interval {interval_ms} ms")
    while not stop.is_set():
        try:
            await client.prune(interval_ms)
        except RecordStoreError as e:
            logger.error(f"Prune sweep failed: {e}")
        sweeps += 1
        try:
            await asyncio.wait_for(stop.wait(), timeout=interval_ms / 1000)
        except asyncio.TimeoutError:
            pass
    logger.info(f"Pruner stopped after {sweeps} sweep(s)")
    return sweeps
