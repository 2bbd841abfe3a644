import errno
import random
import logging
import threading
import time
from typing import NamedTuple, Optional

from multiping import MultiPing, MultiPingError

from pingsweep import icmp
from pingsweep.errors import ScanUnavailable
from pingsweep.resources import get_socket
from pingsweep.utils import int_to_ip


logger = logging.getLogger(__name__)

ICMP_MAX_SIZE = 150
LOCALHOST = '127.0.0.1'


class ProbeResult(NamedTuple):
    address: int
    reachable: bool
    rtt_ms: Optional[int] = None

    @property
    def ip(self) -> str:
        return int_to_ip(self.address)


def unreachable(address: int) -> ProbeResult:
    return ProbeResult(address, False, None)


def _to_ms(seconds: float) -> int:
    return int(round(seconds * 1000))


class _IdAllocator:
    """ hands out 16 bit message ids. Every raw socket sees every echo reply on the host, so ids of
    probes in flight at the same time must not repeat """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._next = random.randint(0, icmp.MAX_SEQUENCE)

    def next(self) -> int:
        with self._lock:
            msg_id = self._next
            self._next = (self._next + 1) % (icmp.MAX_SEQUENCE + 1)
            return msg_id


class Prober:
    """ one reachability check against one address.

    probe() must never raise: any transport problem is reported as an unreachable result, so that a single
    bad address can't abort the scan. timeout is in seconds and there are no retries.
    """
    name = 'base'

    def probe(self, address: int, timeout: float) -> ProbeResult:
        raise NotImplementedError

    def check(self) -> None:
        """ open the transport once, raising PermissionError if we're not allowed to """


class MultiPingProber(Prober):
    """ probe using the multiping library, one MultiPing instance per address """
    name = 'multiping'

    def __init__(self) -> None:
        self._ids = _IdAllocator()

    def probe(self, address: int, timeout: float) -> ProbeResult:
        ip = int_to_ip(address)
        mp = None
        try:
            mp = MultiPing([ip])
            # multiping seeds its ids from the clock, which collides between instances created in the same second.
            # send() bumps the id before using it
            mp._last_used_id = self._ids.next()
            mp.send()
            responses, _ = mp.receive(timeout)
        except (MultiPingError, OSError) as e:
            logger.debug(f'probe {ip} failed: {e}')
            return unreachable(address)
        finally:
            _close_sockets(mp)

        rtt = responses.get(ip)
        if rtt is None:
            return unreachable(address)
        return ProbeResult(address, True, _to_ms(rtt))

    def check(self) -> None:
        try:
            mp = MultiPing([LOCALHOST])
        except MultiPingError as e:
            raise PermissionError(errno.EPERM, str(e)) from e
        _close_sockets(mp)


def _close_sockets(mp) -> None:
    """ MultiPing keeps a v4 and a v6 raw socket open until it's garbage collected """
    if mp is None:
        return
    for name in ('_sock', '_sock6'):
        sock = getattr(mp, name, None)
        if sock is not None:
            sock.close()


class IcmpProber(Prober):
    """ probe by sending our own echo request over a raw socket and waiting for the matching reply """
    name = 'icmp'

    def __init__(self) -> None:
        self._ids = _IdAllocator()
        self._seq = 0
        self._seq_lock = threading.Lock()

    def _next_seq(self) -> int:
        with self._seq_lock:
            self._seq = (self._seq + 1) % (icmp.MAX_SEQUENCE + 1)
            return self._seq

    def probe(self, address: int, timeout: float) -> ProbeResult:
        ip = int_to_ip(address)
        msg_id = self._ids.next()
        packet = icmp.build(self._next_seq(), msg_id)

        try:
            with get_socket(blocking=True) as sock:
                start = time.perf_counter()
                deadline = start + timeout
                sock.sendto(packet, (ip, 0))

                while True:
                    remaining = deadline - time.perf_counter()
                    if remaining <= 0:
                        return unreachable(address)
                    sock.settimeout(remaining)
                    reply = sock.recv(ICMP_MAX_SIZE)
                    if self._is_our_reply(reply, address, msg_id):
                        return ProbeResult(address, True, _to_ms(time.perf_counter() - start))
        except OSError as e:
            # socket.timeout is an OSError too
            logger.debug(f'probe {ip} failed: {e}')
            return unreachable(address)

    @staticmethod
    def _is_our_reply(reply: bytes, address: int, msg_id: int) -> bool:
        return (icmp.is_icmp_reply(reply)
                and icmp.msg_id_match(reply, msg_id)
                and icmp.src_ip_from_packet(reply) == address)

    def check(self) -> None:
        with get_socket(blocking=True) as sock:
            sock.sendto(icmp.build(1, self._ids.next()), (LOCALHOST, 0))


PROBERS = {
    MultiPingProber.name: MultiPingProber,
    IcmpProber.name: IcmpProber,
}


def get_prober(name: str) -> Prober:
    try:
        return PROBERS[name]()
    except KeyError:
        raise ValueError(f'Unknown prober \'{name}\', choose one of {", ".join(PROBERS)}') from None


def check_working(prober: Prober) -> None:
    """ make sure probing can work at all before we start, so an empty result really means nobody answered """
    try:
        prober.check()
    except PermissionError as e:
        raise ScanUnavailable(f'{prober.name} probing not permitted ({e}). '
                              f'Are you root, or do you have the required capabilities?') from e
    except (MultiPingError, OSError) as e:
        # e.g. no IPv6 support in the kernel, multiping always opens a v6 socket too
        raise ScanUnavailable(f'{prober.name} probing unavailable: {e}') from e
