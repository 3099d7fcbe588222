from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Tuple


_pools: Dict[Tuple[str, int], ThreadPoolExecutor] = {}
_lock = threading.Lock()


def worker_pool(name: str, size: int) -> ThreadPoolExecutor:
    """Return the process-wide pool for ``(name, size)``, creating it once.

    Pools hold no per-call state; callers submit work and join on their own
    futures.
    """
    if size < 1:
        raise ValueError(f"worker pool size must be >= 1 (got {size})")
    key = (name, int(size))
    with _lock:
        pool = _pools.get(key)
        if pool is None:
            pool = ThreadPoolExecutor(max_workers=key[1], thread_name_prefix=f"harvest-{name}")
            _pools[key] = pool
        return pool


def shutdown_pools(wait: bool = True) -> None:
    with _lock:
        pools = list(_pools.values())
        _pools.clear()
    for pool in pools:
        pool.shutdown(wait=wait)
