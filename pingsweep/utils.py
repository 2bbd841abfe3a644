import re
import ctypes
import ipaddress
from typing import Generator, NamedTuple, Tuple

from pingsweep.errors import InvalidCidr


MAX_PREFIX = 32
ALL_ONES = 0xFFFFFFFF

_OCTET = r'(25[0-5]|2[0-4][0-9]|1[0-9]{2}|[1-9]?[0-9])'
CIDR_RE = re.compile(rf'{_OCTET}\.{_OCTET}\.{_OCTET}\.{_OCTET}/(3[0-2]|[12]?[0-9])')


class AddressRange(NamedTuple):
    network: int
    broadcast: int
    mask: int
    prefix: int


def compute_range(cidr: str) -> AddressRange:
    """ convert an 'a.b.c.d/p' string into its network/broadcast/mask values.
    The address doesn't have to be network aligned, host bits are simply masked off

    :except InvalidCidr: input doesn't look like a valid IPv4 CIDR
    """
    match = CIDR_RE.fullmatch(cidr) if isinstance(cidr, str) else None
    if not match:
        raise InvalidCidr(cidr)

    *octets, prefix = (int(group) for group in match.groups())

    # first octet is the most significant byte
    address = 0
    for octet in octets:
        address = (address << 8) | octet

    mask = 0 if prefix == 0 else (ALL_ONES << (MAX_PREFIX - prefix)) & ALL_ONES
    network = address & mask
    # use ctypes so the inverted mask stays a 32 bit value
    broadcast = network | ctypes.c_uint32(~mask).value

    return AddressRange(network, broadcast, mask, prefix)


def effective_window(rng: AddressRange, exclude_network_broadcast: bool = True) -> Tuple[int, int]:
    """ first and last address to probe (inclusive).

    /31 and /32 have no network or broadcast address to drop, so the flag only applies below /31
    """
    if exclude_network_broadcast and rng.prefix < 31:
        return rng.network + 1, rng.broadcast - 1
    return rng.network, rng.broadcast


def host_count(start: int, end: int) -> int:
    return end - start + 1


def window_addresses(start: int, end: int) -> Generator[int, None, None]:
    # generator, the window could be really long (think a /8 subnet)
    yield from range(start, end + 1)


def int_to_ip(address: int) -> str:
    return str(ipaddress.IPv4Address(address))


def ip_to_int(ip: str) -> int:
    return int(ipaddress.IPv4Address(ip))
