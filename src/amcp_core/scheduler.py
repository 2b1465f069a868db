# File: src/amcp_core/scheduler.py
"""
AMCP 核心库 - 命令调度器 (Command Scheduler)

单个专用工作线程按提交顺序 (FIFO) 逐一执行所有 socket 操作
(重连尝试与命令发送)。这是唯一的并发控制手段: 只有这一个线程会接触
Transport，因此其他地方不需要加锁，读写也永远不会交错。
"""

import logging
import queue
import threading
from collections.abc import Callable
from concurrent.futures import Future
from typing import Any

from .exceptions import DisposedError

logger = logging.getLogger(__name__)

Action = Callable[[], Any]

# 队列中的停止标记
_STOP = None


class CommandScheduler:
    """单线程、先进先出的动作执行器。"""

    def __init__(self, name: str = "AmcpWorker") -> None:
        self._queue: queue.Queue[tuple[Action, Future] | None] = queue.Queue()
        self._closed = False
        # 保证 "关闭" 与 "入队" 的原子性，关闭后不会再有动作排在最终动作之后
        self._submit_lock = threading.Lock()

        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    @property
    def closed(self) -> bool:
        return self._closed

    def in_worker_thread(self) -> bool:
        """当前调用者是否运行在工作线程中。"""
        return threading.current_thread() is self._thread

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def submit(self, action: Action) -> Future:
        """提交一个动作 (不阻塞调用者)。

        Returns:
            Future: 动作的结果通道。

        Raises:
            DisposedError: 调度器已开始关闭。
        """
        future: Future = Future()
        with self._submit_lock:
            if self._closed:
                raise DisposedError("调度器已关闭")
            self._queue.put((action, future))
        return future

    def shutdown(
        self,
        final_action: Action | None = None,
        wait: bool = True,
        timeout: float | None = None,
    ) -> Future | None:
        """关闭调度器。

        已在队列中的动作仍按顺序执行，随后执行 final_action，然后工作线程退出。
        关闭开始后的任何 submit 都会抛出 DisposedError。

        Args:
            final_action: 最后执行的动作 (如重置连接)。
            wait: 是否等待工作线程退出 (在工作线程内调用时忽略)。
            timeout: 等待的最长秒数。

        Returns:
            Future | None: final_action 的结果通道；重复关闭时返回 None。
        """
        with self._submit_lock:
            if self._closed:
                return None
            self._closed = True

            future: Future | None = None
            if final_action is not None:
                future = Future()
                self._queue.put((final_action, future))
            self._queue.put(_STOP)

        if wait and not self.in_worker_thread():
            self._thread.join(timeout)
        return future

    def _run(self) -> None:
        logger.debug(f"工作线程已启动: {threading.current_thread().name}")
        while True:
            item = self._queue.get()
            if item is _STOP:
                break

            action, future = item
            if not future.set_running_or_notify_cancel():
                continue
            try:
                result = action()
            except Exception as e:
                future.set_exception(e)
            else:
                future.set_result(result)

        logger.debug(f"工作线程已退出: {threading.current_thread().name}")
