import asyncio
import socket
from contextlib import contextmanager, suppress


SOCK_BUFSIZ = 1048576


def _create_socket(blocking: bool = False):
    sock = socket.socket(family=socket.AF_INET, type=socket.SOCK_RAW, proto=socket.IPPROTO_ICMP)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, SOCK_BUFSIZ)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_SNDBUF, SOCK_BUFSIZ)
    sock.setblocking(blocking)
    return sock


@contextmanager
def get_eventloop():
    _loop = asyncio.new_event_loop()
    try:
        yield _loop
    finally:
        pending = asyncio.all_tasks(_loop)
        for task in pending:
            task.cancel()
            # await the task so it gets to run its cancellation
            with suppress(asyncio.CancelledError):
                _loop.run_until_complete(task)
        _loop.run_until_complete(_loop.shutdown_default_executor())
        _loop.close()


@contextmanager
def get_socket(blocking: bool = False):
    _socket = _create_socket(blocking)
    try:
        yield _socket
    finally:
        _socket.close()
