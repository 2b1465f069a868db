# src/amcp_core/__init__.py
"""
AMCP-Core v1.0.0
基于 TCP 的 AMCP 文本控制协议客户端核心库。
"""

from .channel import ResponseChannel

# 暴露核心配置
from .config import (
    ConnectionConfig,
    create_config_from_dict,
    load_config_from_env,
    load_config_from_toml,
)

# 暴露连接与状态
from .connection import Connection

# 暴露异常体系 (方便上层 try-except)
from .exceptions import (
    AmcpError,
    ConfigError,
    DisposedError,
    ErrorKind,
    MalformedResponseError,
    ProtocolError,
    TransportError,
)
from .protocols import Response, Version
from .state import ConnectivitySignal

__version__ = "1.0.0"

__all__ = [
    "Connection",
    "ConnectionConfig",
    "ConnectivitySignal",
    "ResponseChannel",
    "Response",
    "Version",
    "create_config_from_dict",
    "load_config_from_env",
    "load_config_from_toml",
    "AmcpError",
    "ConfigError",
    "TransportError",
    "ProtocolError",
    "ErrorKind",
    "MalformedResponseError",
    "DisposedError",
]
