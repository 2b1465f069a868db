# File: src/amcp_core/reconnect.py
"""
AMCP 核心库 - 自动重连 (Reconnector)

后台定时器: 每隔固定间隔向调度器提交一次连接尝试。
尝试本身在工作线程中执行，已连接时只做存活探测，未连接时才重新建连。
这是尽力而为的后台重试，失败由尝试函数自行记录并吞没，不会向上暴露。
"""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future

from .exceptions import DisposedError
from .scheduler import CommandScheduler

logger = logging.getLogger(__name__)


class Reconnector:
    """周期性重连定时器。"""

    def __init__(
        self,
        scheduler: CommandScheduler,
        attempt: Callable[[], bool],
        interval: float = 1.0,
    ) -> None:
        """初始化重连器。

        Args:
            scheduler: 执行连接尝试的调度器。
            attempt: 连接尝试函数 (在工作线程中执行，返回是否已连接)。
            interval: 尝试间隔 (秒)。
        """
        self.scheduler = scheduler
        self.attempt = attempt
        self.interval = interval

        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._pending: Future | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """启动定时线程 (重复调用无效)。"""
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop, name="AmcpReconnector", daemon=True
        )
        self._thread.start()

    def cancel(self) -> None:
        """停止定时器，返回后不会再提交新的尝试。"""
        self._stop_event.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def _loop(self) -> None:
        while not self._stop_event.wait(self.interval):
            if not self._tick():
                break

    def _tick(self) -> bool:
        """提交一次尝试。返回 False 表示调度器已关闭，应停止定时器。"""
        # 上一次尝试仍在排队 (工作线程忙) 时跳过，避免堆积
        if self._pending is not None and not self._pending.done():
            return True

        try:
            self._pending = self.scheduler.submit(self.attempt)
        except DisposedError:
            logger.debug("调度器已关闭，重连定时器退出")
            return False
        return True
