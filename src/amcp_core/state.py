# File: src/amcp_core/state.py
"""
AMCP 核心库 - 状态模块

负责保存并发布连接的连通状态。
连通状态是一个 "去重" 的布尔流: 订阅者只会观察到真正的状态变化，
不会连续收到两个相同的值，且最后收到的值总是当前状态。
"""

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)

ConnectivityCallback = Callable[[bool], object]


class _Subscriber:
    """订阅者及其投递进度。"""

    def __init__(self, callback: ConnectivityCallback) -> None:
        self.callback = callback
        self.last: bool | None = None
        self.active = True
        # 同一时刻只有一个线程为该订阅者投递
        self.delivering = threading.Lock()


class ConnectivitySignal:
    """可订阅的连通状态 (distinct-until-changed)。

    新订阅者会立即收到当前值，此后只在状态真正变化时收到通知。
    变化通知在发布者所在线程 (通常是连接的工作线程) 中同步执行，
    订阅时的首次回放在订阅者线程中执行。

    每次投递的都是投递时刻的当前值: 订阅与发布并发时，
    订阅者可能跳过一个短暂的中间状态，但不会停留在过期的值上。
    回调执行期间不持有锁。
    """

    def __init__(self, initial: bool = False) -> None:
        self._value = initial
        self._subscribers: dict[ConnectivityCallback, _Subscriber] = {}
        self._lock = threading.Lock()

    @property
    def value(self) -> bool:
        """当前连通状态。"""
        return self._value

    def subscribe(self, callback: ConnectivityCallback) -> Callable[[], None]:
        """注册订阅者。

        Args:
            callback: 接收布尔值的回调。

        Returns:
            Callable[[], None]: 调用即退订。
        """
        with self._lock:
            subscriber = self._subscribers.get(callback)
            if subscriber is None:
                subscriber = self._subscribers[callback] = _Subscriber(callback)
        self._drain(subscriber)

        def unsubscribe() -> None:
            self.unsubscribe(callback)

        return unsubscribe

    def unsubscribe(self, callback: ConnectivityCallback) -> None:
        """移除订阅者 (不存在时忽略)。"""
        with self._lock:
            subscriber = self._subscribers.pop(callback, None)
            if subscriber is not None:
                subscriber.active = False

    def publish(self, connected: bool) -> bool:
        """发布新的连通状态。

        Returns:
            bool: 状态发生变化 (并已通知订阅者) 返回 True。
        """
        with self._lock:
            if connected == self._value:
                return False
            self._value = connected
            targets = list(self._subscribers.values())

        logger.info(f"连通状态变更: {'已连接' if connected else '已断开'}")
        for subscriber in targets:
            self._drain(subscriber)
        return True

    def _next_value(self, subscriber: _Subscriber) -> bool | None:
        """取出待投递的当前值，无需投递时返回 None。"""
        with self._lock:
            if not subscriber.active or subscriber.last == self._value:
                return None
            subscriber.last = self._value
            return self._value

    def _has_pending(self, subscriber: _Subscriber) -> bool:
        with self._lock:
            return subscriber.active and subscriber.last != self._value

    def _drain(self, subscriber: _Subscriber) -> None:
        while True:
            # 其他线程正在投递时直接返回，它会补投最新的值
            if not subscriber.delivering.acquire(blocking=False):
                return
            try:
                while (value := self._next_value(subscriber)) is not None:
                    try:
                        subscriber.callback(value)
                    except Exception as e:
                        logger.warning(f"连通状态回调执行异常: {e}")
            finally:
                subscriber.delivering.release()

            if not self._has_pending(subscriber):
                return
