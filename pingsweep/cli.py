import sys
import signal
import logging
import argparse
import threading
from typing import List, Optional

from pingsweep.errors import ExportFailure, InvalidCidr, ScanUnavailable
from pingsweep.pingsweep import STRATEGIES, default_mode, default_prober, default_timeout, default_workers, scan
from pingsweep.probe import PROBERS, check_working, get_prober
from pingsweep.report import format_table, write_csv
from pingsweep.utils import compute_range, effective_window, host_count


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INVALID_CIDR = 1
EXIT_UNAVAILABLE = 3
EXIT_INTERRUPTED = 130


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog='pingsweep',
        description='Ping every usable address of an IPv4 subnet and list the hosts that answered.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  pingsweep 192.168.1.0/24
  pingsweep 10.0.0.0/16 -t 500 -w 256 -o alive.csv
  pingsweep 10.0.0.4/31 --mode sequential
''')
    parser.add_argument('cidr', help='subnet to scan, e.g. 192.168.1.0/24')
    parser.add_argument('-t', '--timeout', type=int, default=default_timeout,
                        help='per probe timeout in milliseconds (default: %(default)s)')
    parser.add_argument('-w', '--workers', type=int, default=default_workers,
                        help='maximum number of probes in flight (default: %(default)s)')
    parser.add_argument('--include-network-broadcast', action='store_true',
                        help='also probe the network and broadcast address')
    parser.add_argument('-m', '--mode', choices=sorted(STRATEGIES), default=default_mode,
                        help='how probes are scheduled (default: %(default)s)')
    parser.add_argument('-p', '--prober', choices=sorted(PROBERS), default=default_prober,
                        help='how reachability is checked (default: %(default)s)')
    parser.add_argument('-o', '--output', help='also write the reachable hosts to this CSV file')
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument('-v', '--verbose', action='store_true', help='debug logging')
    verbosity.add_argument('-q', '--quiet', action='store_true', help='only log warnings and errors')

    args = parser.parse_args(argv)
    if args.timeout <= 0:
        parser.error('--timeout has to be a positive number of milliseconds')
    if args.workers < 1:
        parser.error('--workers has to be at least 1')
    return args


def _log_level(args: argparse.Namespace) -> int:
    if args.verbose:
        return logging.DEBUG
    if args.quiet:
        return logging.WARNING
    return logging.INFO


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=_log_level(args), format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    exclude = not args.include_network_broadcast
    try:
        rng = compute_range(args.cidr)
    except InvalidCidr as e:
        print(f'error: {e}', file=sys.stderr)
        return EXIT_INVALID_CIDR
    total = host_count(*effective_window(rng, exclude))

    prober = get_prober(args.prober)
    try:
        check_working(prober)
    except ScanUnavailable as e:
        print(f'error: {e}', file=sys.stderr)
        return EXIT_UNAVAILABLE

    cancel = threading.Event()

    def _interrupt(signum, frame):
        if cancel.is_set():
            raise KeyboardInterrupt
        logger.warning('interrupted, waiting for probes in flight (Ctrl-C again to abort)')
        cancel.set()

    previous = signal.signal(signal.SIGINT, _interrupt)
    try:
        report = scan(args.cidr, timeout=args.timeout, workers=args.workers, exclude_network_broadcast=exclude,
                      mode=args.mode, prober=prober, cancel=cancel)
    except KeyboardInterrupt:
        print('aborted', file=sys.stderr)
        return EXIT_INTERRUPTED
    finally:
        signal.signal(signal.SIGINT, previous)

    if report:
        print(format_table(report))
        print(f'\n{len(report)} of {total} hosts reachable in {args.cidr}')
    else:
        print(f'No reachable hosts found in {args.cidr}')

    if args.output:
        try:
            write_csv(report, args.output)
        except ExportFailure as e:
            logger.warning(f'{e}, results are only shown above')

    return EXIT_INTERRUPTED if cancel.is_set() else EXIT_OK


def run() -> None:
    sys.exit(main())
