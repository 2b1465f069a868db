# src/amcp_core/protocols/__init__.py
"""
AMCP 协议层 (Protocol Layer)

本包负责命令的编码与响应的分帧解析。

- 不包含任何 socket 操作或网络 I/O (行读取由调用方注入)。
- 不包含任何状态管理 (State)。
- 不依赖于 connection 或 network 层。
"""

from . import constants
from .codec import (
    Response,
    encode_command,
    iter_body,
    parse_status_code,
    read_response,
    read_status,
)
from .version import Version, parse_version

# 公共 API
__all__ = [
    "constants",
    "Response",
    "encode_command",
    "iter_body",
    "parse_status_code",
    "read_response",
    "read_status",
    "Version",
    "parse_version",
]
