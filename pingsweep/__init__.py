from pingsweep.errors import PingSweepError, InvalidCidr, ScanUnavailable, ExportFailure
from pingsweep.probe import ProbeResult, Prober, MultiPingProber, IcmpProber
from pingsweep.report import aggregate
from pingsweep.utils import AddressRange, compute_range, effective_window
from pingsweep.pingsweep import scan, scan_addresses
