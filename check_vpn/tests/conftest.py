import socket
import logging

import pytest


@pytest.fixture(autouse=True)
def restore_root_logging():
    """setup_logging() replaces root handlers; undo it after each test"""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


# -----------------------
# Loopback TCP endpoints
# -----------------------
@pytest.fixture
def listener_port():
    """A live TCP listener on 127.0.0.1"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(8)
    yield sock.getsockname()[1]
    sock.close()

@pytest.fixture
def closed_port():
    """A loopback port with nothing listening (connection refused)"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port
