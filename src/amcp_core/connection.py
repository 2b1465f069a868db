# File: src/amcp_core/connection.py
"""
AMCP 连接 (Connection Facade)

职责：
1. 资源组装：Transport + Scheduler + Reconnector + ConnectivitySignal。
2. 命令执行：在工作线程中编码命令、读取并分帧响应。
3. 生命周期：初始连接 -> 后台重连 -> close() 关闭。

所有以 `_` 开头且接触 Transport 的方法只在工作线程中执行。
"""

import logging
from collections.abc import Iterator
from functools import partial

from .channel import ResponseChannel
from .config import ConnectionConfig
from .exceptions import AmcpError, DisposedError, TransportError
from .network import Transport
from .protocols import codec
from .protocols.constants import DEFAULT_PORT, Command
from .protocols.version import Version, parse_version
from .reconnect import Reconnector
from .scheduler import CommandScheduler
from .state import ConnectivityCallback, ConnectivitySignal

logger = logging.getLogger(__name__)


class Connection:
    """AMCP 服务器连接。"""

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_PORT,
        *,
        connect_timeout: float = 5.0,
        receive_timeout: float = 5.0,
        reconnect_interval: float = 1.0,
        encoding: str = "utf-8",
        status_callback: ConnectivityCallback | None = None,
    ) -> None:
        """创建连接并立即发起初始连接 (异步，不阻塞)。

        Args:
            host: 服务器地址。
            port: AMCP 端口。
            connect_timeout: 建连超时 (秒)。
            receive_timeout: 接收超时 (秒)。
            reconnect_interval: 后台重连间隔 (秒)。
            encoding: 文本编码。
            status_callback: 连通状态回调，等价于创建后调用 add_listener。
        """
        self.host = host
        self.port = port
        self.connect_timeout = connect_timeout
        self.receive_timeout = receive_timeout
        self.encoding = encoding

        self._transport: Transport | None = None
        self._connectivity = ConnectivitySignal(False)
        self._closed = False

        if status_callback:
            self.add_listener(status_callback)

        self._scheduler = CommandScheduler(name=f"AmcpWorker-{host}:{port}")
        self._scheduler.submit(self._try_connect)

        self._reconnector = Reconnector(
            self._scheduler, self._try_connect, interval=reconnect_interval
        )
        self._reconnector.start()

    @classmethod
    def from_config(
        cls,
        config: ConnectionConfig,
        status_callback: ConnectivityCallback | None = None,
    ) -> "Connection":
        """根据配置对象创建连接。"""
        return cls(
            config.host,
            config.port,
            connect_timeout=config.connect_timeout,
            receive_timeout=config.receive_timeout,
            reconnect_interval=config.reconnect_interval,
            encoding=config.encoding,
            status_callback=status_callback,
        )

    # --- 连通状态 ---

    def connectivity(self) -> ConnectivitySignal:
        """连通状态流 (只在状态变化时通知)。"""
        return self._connectivity

    @property
    def is_connected(self) -> bool:
        return self._connectivity.value

    @property
    def closed(self) -> bool:
        return self._closed

    def add_listener(self, callback: ConnectivityCallback) -> None:
        """注册连通状态监听器。

        当前值在调用线程中立即回放，之后的变化通知在工作线程中执行。
        """
        self._connectivity.subscribe(callback)

    def remove_listener(self, callback: ConnectivityCallback) -> None:
        """移除连通状态监听器。"""
        self._connectivity.unsubscribe(callback)

    # --- 命令 ---

    def send(self, command: str) -> Iterator[str]:
        """发送命令并阻塞到状态行可用。

        只等待状态行 (此时已知命令成功与否)，响应体随后逐行产出。

        Returns:
            Iterator[str]: 响应体各行。

        Raises:
            ProtocolError: 服务器返回错误状态码。
            TransportError: 无法连接或通信中断。
            MalformedResponseError: 状态行无法解析。
            DisposedError: 连接已关闭。
        """
        self._ensure_not_worker()
        channel = self.send_async(command)
        channel.wait_status()
        return iter(channel)

    def send_async(self, command: str) -> ResponseChannel:
        """发送命令 (不阻塞)。

        Returns:
            ResponseChannel: 响应体的结果通道，可订阅、迭代或等待。

        Raises:
            DisposedError: 连接已关闭。
            ValueError: 命令中包含换行符。
        """
        if self._closed:
            raise DisposedError("连接已关闭")
        # 在调用线程中提前校验，避免把非法命令送进工作线程
        codec.encode_command(command, self.encoding)

        channel = ResponseChannel(command, blocking_guard=self._ensure_not_worker)
        self._scheduler.submit(partial(self._execute, command, channel))
        return channel

    def version(self) -> Version:
        """查询服务器版本。

        Raises:
            MalformedResponseError: VERSION 响应格式无效。
        """
        lines = list(self.send(Command.VERSION))
        return parse_version(lines[0] if lines else "")

    # --- 生命周期 ---

    def close(self, goodbye: bool = False, wait: bool = True) -> None:
        """关闭连接。

        先停止重连定时器，再调度唯一一次最终重置，之后工作线程退出。

        Args:
            goodbye: 关闭前向服务器发送 BYE。
            wait: 是否等待工作线程退出。
        """
        if self._closed:
            return

        if goodbye:
            self.send_async(Command.BYE)

        self._closed = True
        self._reconnector.cancel()
        self._scheduler.shutdown(final_action=self._reset, wait=wait)
        logger.debug(f"连接已关闭: {self.host}:{self.port}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__} "
            f"server={self.host}:{self.port}, "
            f"connected={self.is_connected}, "
            f"closed={self._closed}>"
        )

    # --- 工作线程内部 ---

    def _ensure_not_worker(self) -> None:
        if self._scheduler.in_worker_thread():
            raise AmcpError("不能在工作线程 (如连通状态回调或响应回调) 中阻塞等待命令结果")

    def _reset(self) -> None:
        """[Worker] 关闭 Transport 并发布断开。"""
        if self._transport is not None:
            self._transport.close()
        self._transport = None
        self._connectivity.publish(False)

    def _ensure_connected(self) -> Transport:
        """[Worker] 确保已连接：存活则复用，否则重置并重新建连。

        Raises:
            TransportError: 建连失败。
        """
        transport = self._transport
        if transport is not None and transport.is_open():
            self._connectivity.publish(True)
            return transport

        if transport is not None:
            logger.info(f"检测到连接已断开: {self.host}:{self.port}")
        self._reset()

        transport = Transport(
            self.host,
            self.port,
            connect_timeout=self.connect_timeout,
            receive_timeout=self.receive_timeout,
            encoding=self.encoding,
        )
        try:
            transport.connect()
        except TransportError:
            self._reset()
            raise

        self._transport = transport
        self._connectivity.publish(True)
        return transport

    def _try_connect(self) -> bool:
        """[Worker] 后台重连尝试，失败只记录不抛出。"""
        try:
            self._ensure_connected()
        except TransportError as e:
            logger.debug(f"重连失败，稍后重试: {e}")
            return False
        return True

    def _execute(self, command: str, channel: ResponseChannel) -> None:
        """[Worker] 执行一条命令并把结果写入通道。"""
        try:
            transport = self._ensure_connected()
            transport.write_line(command)

            status = codec.read_status(transport.read_line)
            channel.set_status(status)
            for line in codec.iter_body(status, transport.read_line):
                channel.emit(line)

        except TransportError as e:
            logger.warning(f"命令 {command!r} 通信失败，重置连接: {e}")
            self._reset()
            channel.fail(e)
        except AmcpError as e:
            channel.fail(e)
        except Exception as e:
            logger.exception(f"命令 {command!r} 执行异常")
            channel.fail(e)
        else:
            channel.complete()
