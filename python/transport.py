"""
Point-to-point channels carrying worker messages to the aggregator.

Every binding offers the same three calls:

    send(message)             worker side; raises TransportFailure
    receive(timeout) -> (message, ok)
                              aggregator side; ok is False at end-of-stream,
                              raises WorkerTimeout if nothing arrives in time
    close()

Byte-oriented bindings (pipes, sockets) carry one wire line per message,
see encode() and decode().
"""
import logging
import multiprocessing
import os
import queue
import socket
import time
from typing import NamedTuple

from errors import TransportFailure, WorkerTimeout

logger = logging.getLogger(__name__)


class PartialResult(NamedTuple):
    worker_id: int
    processed: int
    inside_count: int


class PointEvent(NamedTuple):
    worker_id: int
    x: float
    y: float


def encode(message) -> str:
    if isinstance(message, PartialResult):
        return f"{message.worker_id};{message.processed};{message.inside_count}\n"
    if isinstance(message, PointEvent):
        return f"{message.worker_id};{message.x:.6f};{message.y:.6f}\n"
    raise TypeError(f"Cannot encode {type(message).__name__}")


def decode(line: str):
    fields = line.strip().split(";")
    if len(fields) != 3:
        raise TransportFailure(f"Malformed record: {line!r}")
    try:
        worker_id = int(fields[0])
    except ValueError:
        raise TransportFailure(f"Malformed worker id in record: {line!r}") from None

    # Integer counts mark a result record, anything else must be a point
    try:
        processed, inside = int(fields[1]), int(fields[2])
    except ValueError:
        pass
    else:
        if processed < 0 or not 0 <= inside <= processed:
            raise TransportFailure(f"Inconsistent counts in record: {line!r}")
        return PartialResult(worker_id, processed, inside)

    try:
        return PointEvent(worker_id, float(fields[1]), float(fields[2]))
    except ValueError:
        raise TransportFailure(f"Malformed record: {line!r}") from None


def _decode_record(name, data):
    try:
        text = data.decode("ascii")
    except UnicodeDecodeError as e:
        raise TransportFailure(f"{name}: undecodable record {data!r}") from e
    return decode(text)


class Transport:
    worker_id = None

    def send(self, message):
        raise NotImplementedError

    def receive(self, timeout=None):
        raise NotImplementedError

    def close(self):
        pass

    @property
    def name(self):
        return f"worker {self.worker_id}" if self.worker_id is not None else repr(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


_EOF = object()


class QueueTransport(Transport):
    """In-process channel for thread workers."""

    def __init__(self, channel: queue.Queue, worker_id=None, writer=False):
        self._queue = channel
        self.worker_id = worker_id
        self._writer = writer
        self._closed = False

    def send(self, message):
        if self._closed or not self._writer:
            raise TransportFailure(f"{self.name}: channel is not open for sending")
        self._queue.put(message)

    def receive(self, timeout=None):
        try:
            message = self._queue.get(timeout=timeout)
        except queue.Empty:
            raise WorkerTimeout(self.worker_id, timeout) from None
        if message is _EOF:
            return None, False
        return message, True

    def close(self):
        if self._writer and not self._closed:
            self._queue.put(_EOF)
        self._closed = True


def queue_channel(worker_id):
    channel = queue.Queue()
    return (QueueTransport(channel, worker_id, writer=True),
            QueueTransport(channel, worker_id))


class PipeTransport(Transport):
    """One end of a multiprocessing pipe."""

    def __init__(self, conn, worker_id=None):
        self._conn = conn
        self.worker_id = worker_id

    def send(self, message):
        try:
            self._conn.send_bytes(encode(message).encode("ascii"))
        except (OSError, ValueError) as e:
            raise TransportFailure(f"{self.name}: {e}") from e

    def receive(self, timeout=None):
        try:
            if not self._conn.poll(timeout):
                raise WorkerTimeout(self.worker_id, timeout)
            data = self._conn.recv_bytes()
        except EOFError:
            return None, False
        except OSError as e:
            raise TransportFailure(f"{self.name}: {e}") from e
        return _decode_record(self.name, data), True

    def close(self):
        self._conn.close()


def pipe_channel(worker_id):
    receiver, sender = multiprocessing.Pipe(duplex=False)
    return PipeTransport(sender, worker_id), PipeTransport(receiver, worker_id)


class SocketTransport(Transport):
    """Newline-delimited wire records over a stream socket."""

    def __init__(self, sock, worker_id=None):
        self._sock = sock
        self._reader = None
        self.worker_id = worker_id

    def send(self, message):
        try:
            self._sock.sendall(encode(message).encode("ascii"))
        except OSError as e:
            raise TransportFailure(f"{self.name}: {e}") from e

    def receive(self, timeout=None):
        if self._reader is None:
            self._reader = self._sock.makefile("rb")
        self._sock.settimeout(timeout)
        try:
            line = self._reader.readline()
        except socket.timeout:
            raise WorkerTimeout(self.worker_id, timeout) from None
        except OSError as e:
            raise TransportFailure(f"{self.name}: {e}") from e
        if not line:
            return None, False
        if not line.endswith(b"\n"):
            raise TransportFailure(f"{self.name}: truncated record {line!r}")
        message = _decode_record(self.name, line)
        if self.worker_id is None:
            # Accepted connections learn their worker from the first record
            self.worker_id = message.worker_id
        return message, True

    def close(self):
        if self._reader is not None:
            self._reader.close()
        try:
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # peer already gone
        self._sock.close()


class UnixSocketListener:
    """Listening Unix-domain socket that workers connect to."""

    def __init__(self, path, backlog):
        self.path = path
        if os.path.exists(path):
            os.unlink(path)
        self._sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            self._sock.bind(path)
            self._sock.listen(backlog)
        except OSError as e:
            self._sock.close()
            raise TransportFailure(f"Cannot listen on {path}: {e}") from e
        logger.debug(f"Listening on {path}")

    @staticmethod
    def connect(path, worker_id):
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.connect(path)
        except OSError as e:
            sock.close()
            raise TransportFailure(f"worker {worker_id}: cannot connect to {path}: {e}") from e
        return SocketTransport(sock, worker_id)

    def accept(self, count, timeout):
        """Accept up to count connections, giving up once timeout elapses."""
        accepted = []
        deadline = time.monotonic() + timeout
        while len(accepted) < count:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            self._sock.settimeout(remaining)
            try:
                conn, _ = self._sock.accept()
            except socket.timeout:
                break
            conn.settimeout(None)
            accepted.append(SocketTransport(conn))
        if len(accepted) < count:
            logger.warning(f"Only {len(accepted)} of {count} workers connected to {self.path}")
        return accepted

    def close(self):
        self._sock.close()
        if os.path.exists(self.path):
            os.unlink(self.path)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
