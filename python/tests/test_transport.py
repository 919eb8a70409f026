import multiprocessing
import os
import socket
import threading

import pytest

from errors import TransportFailure, WorkerTimeout
from transport import (PartialResult, PipeTransport, PointEvent, SocketTransport, UnixSocketListener,
                       decode, encode, pipe_channel, queue_channel)


def test_encode_partial_result():
    assert encode(PartialResult(3, 100, 42)) == "3;100;42\n"


def test_encode_point_event():
    assert encode(PointEvent(1, 0.5, 0.25)) == "1;0.500000;0.250000\n"


def test_decode():
    assert decode("3;100;42\n") == PartialResult(3, 100, 42)
    assert decode("1;0.500000;-0.250000") == PointEvent(1, 0.5, -0.25)
    assert isinstance(decode("1;1.000000;2.000000"), PointEvent)


@pytest.mark.parametrize("line", ["", "abc", "1;2", "1;2;3;4", "x;1;1", "1;x;y", "1;5;7", "1;-1;0"])
def test_decode_rejects_malformed(line):
    with pytest.raises(TransportFailure):
        decode(line)


def test_encode_rejects_unknown():
    with pytest.raises(TypeError):
        encode("1;2;3")


def test_queue_channel():
    writer, reader = queue_channel(4)
    writer.send(PointEvent(4, 0.1, 0.2))
    writer.send(PartialResult(4, 10, 1))
    writer.close()
    assert reader.receive(1) == (PointEvent(4, 0.1, 0.2), True)
    assert reader.receive(1) == (PartialResult(4, 10, 1), True)
    assert reader.receive(1) == (None, False)
    with pytest.raises(TransportFailure):
        writer.send(PartialResult(4, 10, 1))
    with pytest.raises(TransportFailure):
        reader.send(PartialResult(4, 10, 1))


def test_queue_channel_timeout():
    writer, reader = queue_channel(2)
    with pytest.raises(WorkerTimeout) as info:
        reader.receive(0.05)
    assert info.value.worker_id == 2


def test_pipe_channel():
    writer, reader = pipe_channel(0)
    writer.send(PartialResult(0, 10, 4))
    writer.send(PointEvent(0, 1.5, 0.5))
    writer.close()
    assert reader.receive(1) == (PartialResult(0, 10, 4), True)
    assert reader.receive(1) == (PointEvent(0, 1.5, 0.5), True)
    assert reader.receive(1) == (None, False)
    reader.close()


def test_pipe_channel_timeout():
    writer, reader = pipe_channel(1)
    with pytest.raises(WorkerTimeout):
        reader.receive(0.05)
    writer.close()
    reader.close()


def test_pipe_send_after_close():
    writer, reader = pipe_channel(1)
    writer.close()
    with pytest.raises(TransportFailure):
        writer.send(PartialResult(1, 1, 1))
    reader.close()


def test_unix_socket_listener(socket_dir):
    path = os.path.join(socket_dir, "w.sock")

    def client(worker_id):
        with UnixSocketListener.connect(path, worker_id) as transport:
            transport.send(PointEvent(worker_id, 0.5, 0.5))
            transport.send(PartialResult(worker_id, 5, 1))

    with UnixSocketListener(path, backlog=2) as listener:
        threads = [threading.Thread(target=client, args=(w,)) for w in (7, 8)]
        for t in threads:
            t.start()
        readers = listener.accept(2, timeout=5)
        for t in threads:
            t.join()

        assert len(readers) == 2
        seen = set()
        for reader in readers:
            first, ok = reader.receive(1)
            assert ok and isinstance(first, PointEvent)
            assert reader.worker_id == first.worker_id
            second, ok = reader.receive(1)
            assert second == PartialResult(first.worker_id, 5, 1)
            assert reader.receive(1) == (None, False)
            reader.close()
            seen.add(first.worker_id)
        assert seen == {7, 8}
    assert not os.path.exists(path)


def test_unix_socket_accept_times_out(socket_dir):
    path = os.path.join(socket_dir, "w.sock")
    with UnixSocketListener(path, backlog=1) as listener:
        assert listener.accept(1, timeout=0.05) == []


def test_connect_without_listener(socket_dir):
    with pytest.raises(TransportFailure):
        UnixSocketListener.connect(os.path.join(socket_dir, "missing.sock"), 0)


def test_pipe_rejects_undecodable_bytes():
    receiver, sender = multiprocessing.Pipe(duplex=False)
    reader = PipeTransport(receiver, 0)
    sender.send_bytes(b"0;\xff;1\n")
    with pytest.raises(TransportFailure):
        reader.receive(1)
    sender.close()
    reader.close()


def test_socket_rejects_undecodable_bytes():
    left, right = socket.socketpair()
    reader = SocketTransport(left, 0)
    right.sendall(b"\xfe;1;1\n")
    with pytest.raises(TransportFailure):
        reader.receive(1)
    right.close()
    reader.close()
