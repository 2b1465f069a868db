# File: src/amcp_core/protocols/version.py
"""
AMCP 协议层 - VERSION 响应解析
"""

import re
from dataclasses import dataclass

from ..exceptions import MalformedResponseError

# 标签必须存在且不能以空白开头
_VERSION_RE = re.compile(r"(\d+)\.(\d+)\.(\d+)\.(\d+) +(\S.*)", re.ASCII)


@dataclass(frozen=True)
class Version:
    """服务器版本号 (不可变)。"""

    generation: int
    major: int
    minor: int
    revision: int
    tag: str

    def __str__(self) -> str:
        return (
            f"{self.generation}.{self.major}.{self.minor}.{self.revision} {self.tag}"
        )


def parse_version(reply: str) -> Version:
    """解析 VERSION 命令的响应体。

    格式: `<gen>.<maj>.<min>.<rev> <tag>`，例如 `2.0.7.10000 Stable`。

    Args:
        reply: VERSION 响应体的第一行。

    Returns:
        Version: 解析结果。

    Raises:
        MalformedResponseError: 响应不符合格式。
    """
    match = _VERSION_RE.fullmatch(reply)
    if not match:
        raise MalformedResponseError(f"无效的 VERSION 响应: {reply!r}")

    gen, major, minor, rev, tag = match.groups()
    return Version(
        generation=int(gen),
        major=int(major),
        minor=int(minor),
        revision=int(rev),
        tag=tag,
    )
