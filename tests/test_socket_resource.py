"""
Tests for the SocketResource listener holder.
"""

import os
import socket
import threading

import pytest

from globfeed.errors import AcceptError, ListenerError
from globfeed.socket_resource import ListenerState, SocketResource


class TestSocketResource:
    """Test cases for listener creation, accept and close."""

    def test_lifecycle(self, null_logger, socket_path: str):
        resource = SocketResource(logger=null_logger)
        assert resource.state == ListenerState.UNINITIALIZED
        assert resource.get_socket_path() is None

        assert resource.create(socket_path) == socket_path
        assert resource.state == ListenerState.LISTENING
        assert resource.is_listening()
        assert os.path.exists(socket_path)

        assert resource.close_if_present() is True
        assert resource.state == ListenerState.TERMINATED
        assert not os.path.exists(socket_path)

    def test_accept_next_returns_connection(self, null_logger, socket_path: str):
        resource = SocketResource(logger=null_logger)
        resource.create(socket_path)
        try:
            with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as client:
                client.connect(socket_path)
                connection = resource.accept_next()
                connection.sendall(b"hi")
                assert client.recv(2) == b"hi"
                connection.close()
        finally:
            resource.close_if_present()

    def test_close_is_only_effective_once(self, null_logger, socket_path: str):
        resource = SocketResource(logger=null_logger)
        assert resource.close_if_present() is False

        resource.create(socket_path)
        assert resource.close_if_present() is True
        assert resource.close_if_present() is False
        assert resource.terminate() is False

    def test_create_twice_fails(self, null_logger, socket_path: str):
        resource = SocketResource(logger=null_logger)
        resource.create(socket_path)
        try:
            with pytest.raises(ListenerError):
                resource.create(socket_path)
        finally:
            resource.close_if_present()

    def test_create_on_existing_path_fails(self, null_logger, socket_path: str):
        with open(socket_path, "w") as f:
            f.write("occupied")

        resource = SocketResource(logger=null_logger)
        with pytest.raises(ListenerError):
            resource.create(socket_path)
        assert resource.state == ListenerState.UNINITIALIZED

    def test_create_after_terminate_fails(self, null_logger, socket_path: str):
        resource = SocketResource(logger=null_logger)
        resource.terminate()

        with pytest.raises(ListenerError):
            resource.create(socket_path)

    def test_accept_before_create_fails(self, null_logger):
        with pytest.raises(AcceptError):
            SocketResource(logger=null_logger).accept_next()

    def test_close_wakes_blocked_accept(self, null_logger, socket_path: str):
        resource = SocketResource(logger=null_logger)
        resource.create(socket_path)
        errors = []

        def accept():
            try:
                resource.accept_next()
            except AcceptError as e:
                errors.append(e)

        thread = threading.Thread(target=accept, daemon=True)
        thread.start()
        thread.join(0.2)
        assert thread.is_alive(), "accept should block while nobody connects"

        resource.terminate()
        thread.join(5.0)

        assert not thread.is_alive()
        assert len(errors) == 1

    def test_connect_fails_after_close(self, null_logger, socket_path: str):
        resource = SocketResource(logger=null_logger)
        resource.create(socket_path)
        resource.close_if_present()

        with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as client:
            with pytest.raises(OSError):
                client.connect(socket_path)
