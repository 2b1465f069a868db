# File: src/amcp_core/network.py
"""
AMCP 核心库 - 网络模块 (Transport)

封装 TCP Socket 的建立、关闭、存活探测以及按行收发。
该模块屏蔽了底层 Socket 的复杂性，向连接层提供纯粹的行收发接口。

注意: Transport 不是线程安全的，只允许在连接的工作线程中使用。
"""

import logging
import socket

from .exceptions import TransportError
from .liveness import probe_socket
from .protocols.codec import encode_command

logger = logging.getLogger(__name__)

MAX_RECV = 4096
_TERMINATOR = b"\r\n"


class Transport:
    """单个 TCP 连接的持有者。"""

    def __init__(
        self,
        host: str,
        port: int,
        connect_timeout: float = 5.0,
        receive_timeout: float = 5.0,
        encoding: str = "utf-8",
    ) -> None:
        self.host = host
        self.port = port
        self.connect_timeout = connect_timeout
        self.receive_timeout = receive_timeout
        self.encoding = encoding

        self.sock: socket.socket | None = None
        self._buffer = bytearray()

    def connect(self) -> None:
        """建立新的 TCP 连接，旧连接会先被关闭。

        Raises:
            TransportError: 连接被拒绝、超时或地址解析失败。
        """
        self.close()
        address = (self.host, self.port)
        try:
            sock = socket.create_connection(address, timeout=self.connect_timeout)
        except OSError as e:
            raise TransportError(f"连接失败 {self.host}:{self.port}: {e}") from e

        # 读超时有上限，对端假死时以 TransportError 结束
        sock.settimeout(self.receive_timeout)
        self.sock = sock
        logger.debug(f"TCP 连接已建立: {self.host}:{self.port}")

    def close(self) -> None:
        """关闭 socket (可重复调用)。"""
        sock, self.sock = self.sock, None
        self._buffer.clear()
        if sock is None:
            return
        try:
            sock.close()
        except OSError as e:
            logger.debug(f"关闭 socket 时出错 (已忽略): {e}")
        else:
            logger.debug(f"TCP 连接已关闭: {self.host}:{self.port}")

    def is_open(self) -> bool:
        """通过存活探测判断连接是否仍然可用。"""
        if self.sock is None:
            return False
        return probe_socket(self.sock)

    def write_line(self, line: str) -> None:
        """发送一行 (自动追加 CRLF)。

        Raises:
            TransportError: 未连接或发送失败。
        """
        sock = self._require_socket()
        try:
            sock.sendall(encode_command(line, self.encoding))
        except OSError as e:
            raise TransportError(f"发送失败: {e}") from e

    def read_line(self) -> str:
        """读取一行 (不含 CRLF)。

        逐块接收并累积，直到出现 CRLF 终止符。单独的 LF 不视为终止符。

        Raises:
            TransportError: 接收超时、socket 错误，或在终止符之前读到 EOF。
        """
        sock = self._require_socket()

        while True:
            index = self._buffer.find(_TERMINATOR)
            if index >= 0:
                raw = bytes(self._buffer[:index])
                del self._buffer[: index + len(_TERMINATOR)]
                return raw.decode(self.encoding, errors="replace")

            try:
                chunk = sock.recv(MAX_RECV)
            except TimeoutError:
                raise TransportError(f"接收超时 ({self.receive_timeout}s)") from None
            except OSError as e:
                raise TransportError(f"接收错误: {e}") from e

            if not chunk:
                raise TransportError("对端已关闭连接")
            self._buffer.extend(chunk)

    def _require_socket(self) -> socket.socket:
        if self.sock is None:
            raise TransportError("未连接")
        return self.sock

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
