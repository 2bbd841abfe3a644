import time
import threading

import pytest

from pingsweep.probe import Prober, ProbeResult, unreachable
from pingsweep.utils import ip_to_int


class OracleProber(Prober):
    """ deterministic stand-in for the network: answers for a fixed set of addresses """
    name = 'oracle'

    def __init__(self, alive=None, delay: float = 0.0) -> None:
        self.alive = {ip_to_int(ip): rtt for ip, rtt in (alive or {}).items()}
        self.delay = delay
        self.calls = []
        self.timeouts = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def probe(self, address: int, timeout: float) -> ProbeResult:
        with self._lock:
            self.calls.append(address)
            self.timeouts.append(timeout)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            if address in self.alive:
                return ProbeResult(address, True, self.alive[address])
            return unreachable(address)
        finally:
            with self._lock:
                self.in_flight -= 1


@pytest.fixture
def oracle():
    def make(alive=None, delay=0.0):
        return OracleProber(alive, delay)
    return make
