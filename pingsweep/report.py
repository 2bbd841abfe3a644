import csv
import logging
from typing import Iterable, List

from pingsweep.errors import ExportFailure
from pingsweep.probe import ProbeResult


logger = logging.getLogger(__name__)

CSV_HEADER = ('ip', 'rtt_ms')
TABLE_HEADER = ('IP Address', 'RTT (ms)')


def _preference(result: ProbeResult):
    # among duplicates the fastest answer wins, a missing rtt counts as slowest
    return result.rtt_ms is None, result.rtt_ms or 0


def aggregate(results: Iterable[ProbeResult]) -> List[ProbeResult]:
    """ reduce raw probe results to the reachable hosts, one entry per address, sorted by the numeric address
    (never by the dotted text, '10.0.0.9' comes before '10.0.0.10') """
    best = {}
    for result in results:
        if not result.reachable:
            continue
        current = best.get(result.address)
        if current is None or _preference(result) < _preference(current):
            best[result.address] = result

    return [best[address] for address in sorted(best)]


def format_table(report: List[ProbeResult]) -> str:
    rows = [(result.ip, '' if result.rtt_ms is None else str(result.rtt_ms)) for result in report]
    ip_width = max([len(TABLE_HEADER[0])] + [len(ip) for ip, _ in rows])
    rtt_width = max([len(TABLE_HEADER[1])] + [len(rtt) for _, rtt in rows])

    lines = [f'{TABLE_HEADER[0]:<{ip_width}}  {TABLE_HEADER[1]:>{rtt_width}}',
             f'{"-" * ip_width}  {"-" * rtt_width}']
    lines.extend(f'{ip:<{ip_width}}  {rtt:>{rtt_width}}' for ip, rtt in rows)
    return '\n'.join(lines)


def write_csv(report: List[ProbeResult], path: str) -> None:
    """ write the report as is, in the order given

    :except ExportFailure: file couldn't be written
    """
    try:
        with open(path, 'w', newline='') as fh:
            writer = csv.writer(fh)
            writer.writerow(CSV_HEADER)
            for result in report:
                writer.writerow((result.ip, '' if result.rtt_ms is None else result.rtt_ms))
    except OSError as e:
        raise ExportFailure(path, e.strerror or str(e)) from e

    logger.debug(f'wrote {len(report)} rows to {path}')
