# File: src/amcp_core/liveness.py
"""
AMCP 核心库 - 存活探测 (Liveness Probe)

TCP 在不进行 I/O 的情况下无法感知半开连接。
本模块在不做完整读写往返的前提下判断一个已建立的 socket 是否仍然可用:

1. 将 socket 临时切换为非阻塞模式。
2. 发送 0 字节数据: "会阻塞" 视为正常，其他 socket 错误视为对端已消失。
3. 非阻塞地 MSG_PEEK 一个字节: 读到 EOF 说明对端已有序关闭 (FIN)，
   Linux 上 0 字节发送无法发现这种情况。
4. 无论从哪条路径退出，都恢复 socket 原本的超时/阻塞模式。
"""

import errno
import logging
import socket

logger = logging.getLogger(__name__)

# 非阻塞 I/O 的 "会阻塞" 错误码 (视为连接正常)
# 10035 == WSAEWOULDBLOCK (Windows)
WOULD_BLOCK_ERRNOS = frozenset({errno.EAGAIN, errno.EWOULDBLOCK, 10035})


def _would_block(exc: OSError) -> bool:
    return isinstance(exc, BlockingIOError) or exc.errno in WOULD_BLOCK_ERRNOS


def probe_socket(sock: socket.socket) -> bool:
    """探测 socket 是否仍然连通。

    Args:
        sock: 已连接的 TCP socket。

    Returns:
        bool: 仍可用返回 True，对端已断开或 socket 已关闭返回 False。
    """
    if sock.fileno() == -1:
        return False

    original_timeout = sock.gettimeout()
    try:
        sock.setblocking(False)

        try:
            sock.send(b"")
        except OSError as e:
            if not _would_block(e):
                logger.debug(f"存活探测: 0 字节发送失败 ({e})")
                return False

        try:
            peeked = sock.recv(1, socket.MSG_PEEK)
        except OSError as e:
            if _would_block(e):
                return True
            logger.debug(f"存活探测: 预读失败 ({e})")
            return False

        if not peeked:
            logger.debug("存活探测: 对端已关闭连接 (EOF)")
            return False
        return True

    finally:
        if sock.fileno() != -1:
            sock.settimeout(original_timeout)
