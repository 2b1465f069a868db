# tests/conftest.py
import socket
import sys
import threading
import time
from pathlib import Path

import pytest

# 确保 src 目录在 sys.path 中
src_path = Path(__file__).resolve().parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from amcp_core.config import ConnectionConfig


class ScriptedPeer:
    """
    本地回环上的脚本化 AMCP 服务器。

    按行接收命令，按 replies 表回复；未登记的命令回复 `202 <cmd> OK`。
    close_after 中的命令回复后立即断开该连接。
    """

    def __init__(self, replies=None, close_after=()):
        self.replies: dict[str, bytes] = dict(replies or {})
        self.close_after = set(close_after)
        self.received: list[str] = []
        self.accepted = 0

        self._lock = threading.Lock()
        self._clients: list[socket.socket] = []
        self._stop = threading.Event()

        self._server = socket.create_server(("127.0.0.1", 0))
        self._server.settimeout(0.05)
        self.port = self._server.getsockname()[1]

        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self):
        while not self._stop.is_set():
            try:
                conn, _ = self._server.accept()
            except TimeoutError:
                continue
            except OSError:
                return
            with self._lock:
                self.accepted += 1
                self._clients.append(conn)
            threading.Thread(target=self._handle, args=(conn,), daemon=True).start()

    def _handle(self, conn):
        conn.settimeout(0.05)
        buffer = b""
        while not self._stop.is_set():
            try:
                chunk = conn.recv(4096)
            except TimeoutError:
                continue
            except OSError:
                return
            if not chunk:
                conn.close()
                return

            buffer += chunk
            while b"\r\n" in buffer:
                raw, buffer = buffer.split(b"\r\n", 1)
                command = raw.decode()
                with self._lock:
                    self.received.append(command)
                reply = self.replies.get(command, f"202 {command} OK\r\n".encode())
                try:
                    conn.sendall(reply)
                except OSError:
                    return
                if command in self.close_after:
                    self._drop(conn)
                    return

    def _drop(self, conn):
        try:
            conn.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        conn.close()

    def drop_clients(self):
        """关闭所有已建立的客户端连接 (服务器继续监听)。"""
        with self._lock:
            clients, self._clients = self._clients, []
        for conn in clients:
            self._drop(conn)

    def close(self):
        self._stop.set()
        self._server.close()
        self.drop_clients()


def wait_until(predicate, timeout=3.0, interval=0.01):
    """轮询直到条件成立，超时返回 False。"""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def unused_port() -> int:
    """获取一个当前无人监听的本地端口。"""
    with socket.create_server(("127.0.0.1", 0)) as s:
        return s.getsockname()[1]


@pytest.fixture
def valid_config():
    """[Fixture] 返回一个指向本地的 ConnectionConfig 对象。"""
    return ConnectionConfig(
        host="127.0.0.1",
        port=5250,
        connect_timeout=1.0,
        receive_timeout=1.0,
        reconnect_interval=0.05,
        encoding="utf-8",
    )


@pytest.fixture
def peer():
    """[Fixture] 一个脚本化的本地 AMCP 服务器。"""
    server = ScriptedPeer()
    yield server
    server.close()
