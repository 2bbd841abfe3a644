import pytest

from pingsweep.errors import InvalidCidr
from pingsweep.utils import (AddressRange, compute_range, effective_window, host_count, int_to_ip, ip_to_int,
                             window_addresses)


def window_ips(cidr, exclude=True):
    start, end = effective_window(compute_range(cidr), exclude)
    return [int_to_ip(addr) for addr in window_addresses(start, end)]


def test_compute_range():
    rng = compute_range('192.168.1.77/24')
    assert rng == AddressRange(network=ip_to_int('192.168.1.0'),
                               broadcast=ip_to_int('192.168.1.255'),
                               mask=ip_to_int('255.255.255.0'),
                               prefix=24)


def test_octets_are_big_endian():
    assert compute_range('1.2.3.4/32').network == 0x01020304


@pytest.mark.parametrize('prefix', range(0, 33))
def test_range_size_matches_prefix(prefix):
    rng = compute_range(f'172.16.85.3/{prefix}')
    assert rng.broadcast - rng.network == 2 ** (32 - prefix) - 1
    assert rng.network == ip_to_int('172.16.85.3') & rng.mask
    assert rng.network <= rng.broadcast


@pytest.mark.parametrize('prefix', range(0, 31))
def test_exclusion_drops_two_addresses(prefix):
    start, end = effective_window(compute_range(f'10.20.30.40/{prefix}'), True)
    assert host_count(start, end) == 2 ** (32 - prefix) - 2


@pytest.mark.parametrize('cidr', ['10.0.0.4/31', '10.0.0.5/31', '203.0.113.7/32'])
@pytest.mark.parametrize('exclude', [True, False])
def test_point_to_point_and_host_ignore_exclusion(cidr, exclude):
    rng = compute_range(cidr)
    assert effective_window(rng, exclude) == (rng.network, rng.broadcast)


def test_slash_30():
    assert window_ips('192.168.1.0/30') == ['192.168.1.1', '192.168.1.2']
    assert window_ips('192.168.1.0/30', exclude=False) == ['192.168.1.0', '192.168.1.1',
                                                           '192.168.1.2', '192.168.1.3']


def test_slash_31():
    assert window_ips('10.0.0.4/31') == ['10.0.0.4', '10.0.0.5']


def test_slash_32():
    assert window_ips('203.0.113.7/32') == ['203.0.113.7']
    start, end = effective_window(compute_range('203.0.113.7/32'))
    assert host_count(start, end) == 1


def test_slash_0_doesnt_overflow():
    rng = compute_range('8.8.8.8/0')
    assert rng.mask == 0
    assert (rng.network, rng.broadcast) == (0, 0xFFFFFFFF)
    assert host_count(*effective_window(rng, True)) == 2 ** 32 - 2
    assert host_count(*effective_window(rng, False)) == 2 ** 32


def test_window_addresses_is_lazy():
    addrs = window_addresses(*effective_window(compute_range('10.0.0.0/8')))
    assert next(addrs) == ip_to_int('10.0.0.1')
    assert next(addrs) == ip_to_int('10.0.0.2')


@pytest.mark.parametrize('cidr', [
    '10.0.0/24',
    '10.0.0.0',
    '10.0.0.0/',
    '10.0.0.0/33',
    '10.0.0.0/-1',
    '256.0.0.0/8',
    '10.0.0.010/24',
    '10.0.0.0.0/24',
    ' 10.0.0.0/24',
    '10.0.0.0/24\n',
    'a.b.c.d/8',
    '',
])
def test_invalid_cidr(cidr):
    with pytest.raises(InvalidCidr) as exc_info:
        compute_range(cidr)
    assert exc_info.value.cidr == cidr


def test_invalid_cidr_is_a_value_error():
    with pytest.raises(ValueError):
        compute_range(None)
