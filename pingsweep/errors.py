class PingSweepError(Exception):
    pass


class InvalidCidr(PingSweepError, ValueError):
    """ raised when the input isn't a dotted-quad IPv4 address followed by /0-32 """

    def __init__(self, cidr: str) -> None:
        self.cidr = cidr
        super().__init__(f'Invalid CIDR \'{cidr}\', expected something like 192.168.0.0/24')


class ScanUnavailable(PingSweepError):
    """ the probe transport can't be used at all (usually missing privileges) """


class ExportFailure(PingSweepError):

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f'Could not write {path}: {reason}')
