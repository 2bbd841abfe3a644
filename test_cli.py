import errno
import logging

import pytest

from pingsweep import cli
from pingsweep.probe import Prober


@pytest.fixture
def prober(monkeypatch, oracle):
    instance = oracle({'192.168.1.1': 3, '192.168.1.2': 15})
    monkeypatch.setattr(cli, 'get_prober', lambda name: instance)
    return instance


def test_scan(prober, capsys):
    assert cli.main(['192.168.1.0/30', '-q']) == cli.EXIT_OK
    out = capsys.readouterr().out
    assert '192.168.1.1' in out
    assert '192.168.1.2' in out
    assert '2 of 2 hosts reachable in 192.168.1.0/30' in out


def test_invalid_cidr(prober, capsys):
    assert cli.main(['10.0.0/24']) == cli.EXIT_INVALID_CIDR
    assert 'Invalid CIDR' in capsys.readouterr().err
    assert prober.calls == []


def test_no_hosts(prober, capsys):
    assert cli.main(['10.9.9.0/29', '-q', '--mode', 'sequential']) == cli.EXIT_OK
    assert 'No reachable hosts found in 10.9.9.0/29' in capsys.readouterr().out
    assert len(prober.calls) == 6


class UnprivilegedProber(Prober):
    name = 'unprivileged'

    def check(self):
        raise PermissionError(1, 'Operation not permitted')

    def probe(self, address, timeout):
        raise AssertionError('should never probe')


def test_unavailable(monkeypatch, capsys):
    monkeypatch.setattr(cli, 'get_prober', lambda name: UnprivilegedProber())
    assert cli.main(['192.168.1.0/30']) == cli.EXIT_UNAVAILABLE
    assert 'Are you root' in capsys.readouterr().err


def test_csv_output(prober, tmp_path):
    path = tmp_path / 'alive.csv'
    assert cli.main(['192.168.1.0/30', '-q', '-o', str(path)]) == cli.EXIT_OK
    assert path.read_text().splitlines() == ['ip,rtt_ms', '192.168.1.1,3', '192.168.1.2,15']


def test_csv_failure_still_reports(prober, tmp_path, capsys, caplog):
    path = tmp_path / 'missing' / 'alive.csv'
    with caplog.at_level(logging.WARNING):
        assert cli.main(['192.168.1.0/30', '-q', '-o', str(path)]) == cli.EXIT_OK
    assert '192.168.1.2' in capsys.readouterr().out
    assert 'Could not write' in caplog.text


def test_options_reach_the_scan(prober):
    cli.main(['192.168.1.0/30', '-q', '-t', '250', '--include-network-broadcast', '-w', '2'])
    assert len(prober.calls) == 4
    assert set(prober.timeouts) == {0.25}


@pytest.mark.parametrize('argv', [['10.0.0.0/24', '-t', '0'], ['10.0.0.0/24', '-w', '0'],
                                  ['10.0.0.0/24', '-m', 'forked'], ['10.0.0.0/24', '-v', '-q'], []])
def test_bad_options(argv):
    with pytest.raises(SystemExit):
        cli.parse_args(argv)


def test_defaults():
    args = cli.parse_args(['10.0.0.0/24'])
    assert args.timeout == 1000
    assert args.workers == 100
    assert args.mode == 'threads'
    assert args.prober == 'multiping'
    assert not args.include_network_broadcast


class NoIpv6Prober(Prober):
    name = 'no-ipv6'

    def check(self):
        raise OSError(errno.EAFNOSUPPORT, 'Address family not supported by protocol')

    def probe(self, address, timeout):
        raise AssertionError('should never probe')


def test_unavailable_other_socket_error(monkeypatch, capsys):
    monkeypatch.setattr(cli, 'get_prober', lambda name: NoIpv6Prober())
    assert cli.main(['192.168.1.0/30', '-q']) == cli.EXIT_UNAVAILABLE
    assert 'Address family not supported' in capsys.readouterr().err


def test_exit_codes_are_distinct():
    # 2 is what argparse exits with on usage errors
    codes = [cli.EXIT_OK, cli.EXIT_INVALID_CIDR, cli.EXIT_UNAVAILABLE, cli.EXIT_INTERRUPTED, 2]
    assert len(set(codes)) == len(codes)
