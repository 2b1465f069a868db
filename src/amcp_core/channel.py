# File: src/amcp_core/channel.py
"""
AMCP 核心库 - 响应通道 (Response Channel)

每条命令对应一个单生产者通道:
- 生产者 (工作线程) 依次写入状态行、响应体各行，最后完成或失败。
- 消费者 (任意线程) 可以阻塞等待状态行、迭代响应体，或注册回调。

已产生的行会被保留，因此晚到的订阅者和迭代器也能看到完整结果。
"""

import logging
import threading
from collections.abc import Callable, Iterator

logger = logging.getLogger(__name__)

LineCallback = Callable[[str], object]
ErrorCallback = Callable[[BaseException], object]
DoneCallback = Callable[[], object]


class _Observer:
    """订阅者及其投递进度。"""

    def __init__(
        self,
        on_next: LineCallback | None,
        on_error: ErrorCallback | None,
        on_completed: DoneCallback | None,
    ) -> None:
        self.on_next = on_next
        self.on_error = on_error
        self.on_completed = on_completed
        self.cursor = 0
        self.finished = False
        self.active = True
        # 同一时刻只有一个线程为该订阅者投递，保证顺序
        self.delivering = threading.Lock()


class ResponseChannel:
    """单条命令的结果通道。

    回调执行期间不持有通道锁，回调可能运行在工作线程或订阅者线程中。
    """

    def __init__(
        self,
        command: str,
        blocking_guard: Callable[[], None] | None = None,
    ) -> None:
        """初始化通道。

        Args:
            command: 对应的命令行。
            blocking_guard: 消费者即将阻塞等待时调用，可抛出异常拒绝等待
                (如禁止在工作线程中等待)。结果已就绪时不会调用。
        """
        self.command = command
        self._blocking_guard = blocking_guard

        self._cond = threading.Condition()
        self._status: str | None = None
        self._lines: list[str] = []
        self._error: BaseException | None = None
        self._done = False
        self._observers: list[_Observer] = []

    # --- 生产者接口 (仅限工作线程) ---

    def set_status(self, status: str) -> None:
        with self._cond:
            self._status = status
            self._cond.notify_all()

    def emit(self, line: str) -> None:
        with self._cond:
            if self._done:
                raise RuntimeError("通道已结束，不能再写入")
            self._lines.append(line)
            self._cond.notify_all()
            observers = list(self._observers)
        self._dispatch(observers)

    def complete(self) -> None:
        self._finish(None)

    def fail(self, error: BaseException) -> None:
        self._finish(error)

    def _finish(self, error: BaseException | None) -> None:
        with self._cond:
            if self._done:
                return
            self._error = error
            self._done = True
            self._cond.notify_all()
            observers, self._observers = self._observers, []
        self._dispatch(observers)

    # --- 消费者接口 ---

    @property
    def status(self) -> str | None:
        """状态行，尚未收到时为 None。"""
        return self._status

    @property
    def done(self) -> bool:
        return self._done

    @property
    def error(self) -> BaseException | None:
        return self._error

    def wait_status(self, timeout: float | None = None) -> str:
        """阻塞直到状态行可用。

        Args:
            timeout: 最长等待秒数，None 表示一直等待。

        Returns:
            str: 状态行。

        Raises:
            TimeoutError: 超时仍未收到状态行。
            AmcpError: 命令在产生状态行之前失败 (如错误状态码或连接失败)，
                或 blocking_guard 拒绝了等待。
        """
        with self._cond:
            ready = self._wait_for(
                lambda: self._status is not None or self._done, timeout
            )
            if not ready:
                raise TimeoutError(f"等待状态行超时: {self.command!r}")
            if self._status is None:
                if self._error is not None:
                    raise self._error
                raise RuntimeError(f"命令结束但没有状态行: {self.command!r}")
            return self._status

    def result(self, timeout: float | None = None) -> list[str]:
        """阻塞直到命令结束，返回全部响应体。

        Raises:
            TimeoutError: 超时。
            AmcpError: 命令失败，或 blocking_guard 拒绝了等待。
        """
        with self._cond:
            if not self._wait_for(lambda: self._done, timeout):
                raise TimeoutError(f"等待命令完成超时: {self.command!r}")
            if self._error is not None:
                raise self._error
            return list(self._lines)

    def __iter__(self) -> Iterator[str]:
        """逐行迭代响应体，行到达前阻塞；命令失败时在已产出的行之后抛出异常。"""
        index = 0
        while True:
            with self._cond:
                self._wait_for(lambda: index < len(self._lines) or self._done)
                if index < len(self._lines):
                    line = self._lines[index]
                elif self._error is not None:
                    raise self._error
                else:
                    return
            index += 1
            yield line

    def subscribe(
        self,
        on_next: LineCallback | None = None,
        on_error: ErrorCallback | None = None,
        on_completed: DoneCallback | None = None,
    ) -> Callable[[], None]:
        """注册观察者，已产生的行会先被回放 (在调用线程中)。

        Returns:
            Callable[[], None]: 调用即退订。
        """
        observer = _Observer(on_next, on_error, on_completed)
        with self._cond:
            if not self._done:
                self._observers.append(observer)
        self._drain(observer)

        def unsubscribe() -> None:
            with self._cond:
                observer.active = False
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe

    def _wait_for(
        self, predicate: Callable[[], bool], timeout: float | None = None
    ) -> bool:
        """[持有 _cond] 条件未满足时先经过 blocking_guard，再阻塞等待。"""
        if predicate():
            return True
        if self._blocking_guard is not None:
            self._blocking_guard()
        return self._cond.wait_for(predicate, timeout)

    # --- 投递 ---

    def _dispatch(self, observers: list[_Observer]) -> None:
        for observer in observers:
            self._drain(observer)

    def _next_event(self, observer: _Observer):
        """取出该订阅者的下一个待投递事件，没有时返回 None。"""
        with self._cond:
            if not observer.active or observer.finished:
                return None
            if observer.cursor < len(self._lines):
                line = self._lines[observer.cursor]
                observer.cursor += 1
                return observer.on_next, (line,)
            if self._done:
                observer.finished = True
                if self._error is not None:
                    return observer.on_error, (self._error,)
                return observer.on_completed, ()
            return None

    def _has_pending(self, observer: _Observer) -> bool:
        with self._cond:
            if not observer.active or observer.finished:
                return False
            return observer.cursor < len(self._lines) or self._done

    def _drain(self, observer: _Observer) -> None:
        while True:
            # 其他线程正在投递时直接返回，它会把新事件一并投递完
            if not observer.delivering.acquire(blocking=False):
                return
            try:
                while (event := self._next_event(observer)) is not None:
                    callback, args = event
                    self._call(callback, *args)
            finally:
                observer.delivering.release()

            # 释放期间可能有新事件到达而投递方未能拿到锁
            if not self._has_pending(observer):
                return

    @staticmethod
    def _call(callback, *args) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            logger.warning(f"响应回调执行异常: {e}")

    def __repr__(self) -> str:
        state = "failed" if self._error else ("done" if self._done else "pending")
        return f"<{self.__class__.__name__} command={self.command!r} {state}>"
