import asyncio
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, List

from pingsweep.probe import Prober, ProbeResult, get_prober, unreachable
from pingsweep.report import aggregate
from pingsweep.resources import get_eventloop
from pingsweep.utils import compute_range, effective_window, host_count, int_to_ip, window_addresses


logger = logging.getLogger(__name__)

default_timeout = 1000  # ms
default_workers = 100
default_mode = 'threads'
default_prober = 'multiping'

ProbeFn = Callable[[int], ProbeResult]


def scan(cidr: str, *, timeout: int = default_timeout, workers: int = default_workers,
         exclude_network_broadcast: bool = True, mode: str = default_mode, prober: Prober = None,
         cancel: threading.Event = None) -> List[ProbeResult]:
    """ main method for ping scanning an IPv4 subnet

    Usage: pingsweep.scan('192.168.0.0/24') OR
           pingsweep.scan('10.0.0.0/16', timeout=500, workers=256, mode='asyncio')

    Additional parameters:
        timeout: how long to wait for each single reply, in milliseconds
        workers: maximum number of probes in flight at the same time
        exclude_network_broadcast: skip the network and broadcast address (doesn't apply to /31 and /32)
        mode: 'threads', 'asyncio' or 'sequential'
        prober: what to check reachability with, defaults to a MultiPingProber
        cancel: set this event to stop dispatching new probes

    :returns the reachable hosts, sorted by address
    :except InvalidCidr: raised before any probe is sent
    """
    rng = compute_range(cidr)

    if timeout <= 0:
        raise ValueError(f'timeout has to be positive, got {timeout}')
    if workers < 1:
        raise ValueError(f'workers has to be at least 1, got {workers}')

    start, end = effective_window(rng, exclude_network_broadcast)
    logger.info(f'scanning {cidr}: {host_count(start, end)} hosts, timeout {timeout}ms, '
                f'{workers} workers, {mode} mode')

    start_time = time.time()
    results = scan_addresses(window_addresses(start, end), prober or get_prober(default_prober),
                             timeout=timeout / 1000, workers=workers, mode=mode, cancel=cancel)
    report = aggregate(results)

    logger.info(f'[{int((time.time() - start_time) * 1000)}ms] {len(report)} of {len(results)} hosts answered')
    return report


def scan_addresses(addresses: Iterable[int], prober: Prober, *, timeout: float, workers: int = default_workers,
                   mode: str = default_mode, cancel: threading.Event = None) -> List[ProbeResult]:
    """ probe every address once, returns one result per dispatched address in completion order.
    timeout here is in seconds """
    strategy = get_strategy(mode, workers)
    collector = ResultCollector()

    def probe(address: int) -> ProbeResult:
        return _safe_probe(prober, address, timeout)

    strategy.run(addresses, probe, collector, cancel or threading.Event())
    return collector.results()


def _safe_probe(prober: Prober, address: int, timeout: float) -> ProbeResult:
    """ probers aren't supposed to raise, but if one does it only costs that address """
    try:
        return prober.probe(address, timeout)
    except Exception as e:
        logger.warning(f'{prober.name} prober raised for {int_to_ip(address)}: {e!r}')
        return unreachable(address)


class ResultCollector:
    """ append only, safe to add to from several threads """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._results = []

    def add(self, result: ProbeResult) -> None:
        with self._lock:
            self._results.append(result)
            count = len(self._results)
        if count % 1024 == 0:
            logger.debug(f'{count} probes done')

    def results(self) -> List[ProbeResult]:
        with self._lock:
            return list(self._results)

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)


class SequentialStrategy:
    """ one probe at a time, in input order. Slow, but handy as a reference for the parallel ones """
    name = 'sequential'

    def __init__(self, workers: int = 1) -> None:
        self.workers = 1

    def run(self, addresses: Iterable[int], probe: ProbeFn, collector: ResultCollector,
            cancel: threading.Event) -> None:
        for address in addresses:
            if cancel.is_set():
                logger.info('scan cancelled, not dispatching any more probes')
                return
            collector.add(probe(address))


class ThreadPoolStrategy:
    """
    Fixed size thread pool. The dispatcher has to get a slot from the semaphore before submitting, the slot is
    handed back once the probe is done, so we never have more than `workers` probes in flight (or queued)
    """
    name = 'threads'

    def __init__(self, workers: int = default_workers) -> None:
        self.workers = workers

    def run(self, addresses: Iterable[int], probe: ProbeFn, collector: ResultCollector,
            cancel: threading.Event) -> None:
        slots = threading.BoundedSemaphore(self.workers)

        def work(address: int) -> None:
            try:
                collector.add(probe(address))
            finally:
                slots.release()

        # leaving the with block joins every submitted probe
        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix='pingsweep') as pool:
            for address in addresses:
                slots.acquire()
                if cancel.is_set():
                    slots.release()
                    logger.info('scan cancelled, waiting for probes in flight')
                    break
                pool.submit(work, address)


class AsyncioStrategy:
    """ event loop driven fan-out: an asyncio.Semaphore caps the probes in flight, the blocking probes themselves
    run in the loop's thread pool """
    name = 'asyncio'

    def __init__(self, workers: int = default_workers) -> None:
        self.workers = workers

    def run(self, addresses: Iterable[int], probe: ProbeFn, collector: ResultCollector,
            cancel: threading.Event) -> None:
        with get_eventloop() as loop, ThreadPoolExecutor(max_workers=self.workers,
                                                         thread_name_prefix='pingsweep') as pool:
            loop.run_until_complete(self._dispatch(loop, pool, addresses, probe, collector, cancel))

    async def _dispatch(self, loop: asyncio.AbstractEventLoop, pool: ThreadPoolExecutor,
                        addresses: Iterable[int], probe: ProbeFn, collector: ResultCollector,
                        cancel: threading.Event) -> None:
        slots = asyncio.Semaphore(self.workers)
        tasks = set()

        async def work(address: int) -> None:
            try:
                collector.add(await loop.run_in_executor(pool, probe, address))
            finally:
                slots.release()

        for address in addresses:
            await slots.acquire()
            if cancel.is_set():
                slots.release()
                logger.info('scan cancelled, waiting for probes in flight')
                break
            task = loop.create_task(work(address))
            tasks.add(task)
            task.add_done_callback(tasks.discard)

        if tasks:
            await asyncio.gather(*tasks)


STRATEGIES = {
    SequentialStrategy.name: SequentialStrategy,
    ThreadPoolStrategy.name: ThreadPoolStrategy,
    AsyncioStrategy.name: AsyncioStrategy,
}


def get_strategy(mode: str, workers: int = default_workers):
    try:
        strategy = STRATEGIES[mode]
    except KeyError:
        raise ValueError(f'Unknown mode \'{mode}\', choose one of {", ".join(STRATEGIES)}') from None
    return strategy(workers)
