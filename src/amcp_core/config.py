# File: src/amcp_core/config.py
"""
AMCP 核心库 - 配置模块

负责连接配置的加载、解析与强类型转换。
支持从 TOML 文件、环境变量 (可选 .env 文件) 或字典中加载配置。
"""

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .exceptions import ConfigError
from .protocols.constants import DEFAULT_PORT

logger = logging.getLogger(__name__)

ENV_PREFIX = "AMCP_"


@dataclass(frozen=True)
class ConnectionConfig:
    """Connection 的强类型配置对象。

    所有字段均为只读 (frozen=True)，确保配置在运行时不可变。

    Attributes:
        host: 服务器主机名或 IP。
        port: AMCP 端口 (默认 5250)。
        connect_timeout: 建立 TCP 连接的超时 (秒)。
        receive_timeout: 单次接收的超时 (秒)，对端假死时以 TransportError 结束。
        reconnect_interval: 后台重连尝试的间隔 (秒)。
        encoding: 命令与响应的文本编码。
    """

    host: str
    port: int = DEFAULT_PORT
    connect_timeout: float = 5.0
    receive_timeout: float = 5.0
    reconnect_interval: float = 1.0
    encoding: str = "utf-8"


def create_config_from_dict(raw_data: dict[str, Any]) -> ConnectionConfig:
    """通用工厂：将字典转换为强类型配置对象。

    负责字段的清洗、默认值注入和类型转换。

    Args:
        raw_data: 原始配置字典 (来自 TOML 或 Env)。

    Returns:
        ConnectionConfig: 验证并转换后的配置对象。

    Raises:
        ConfigError: 当必要字段缺失或格式错误时抛出。
    """
    try:
        # --- 内部辅助函数 ---
        def _req(key: str) -> Any:
            """获取必要字段，缺失则报错"""
            if key not in raw_data or str(raw_data[key]).strip() == "":
                raise ConfigError(f"配置缺失: 缺少必要字段 '{key}'")
            return raw_data[key]

        def _get(key: str, default: Any) -> Any:
            """获取可选字段，缺失则使用默认值"""
            return raw_data.get(key, default)

        def _to_port(key: str) -> int:
            val = _get(key, DEFAULT_PORT)
            try:
                port = int(val)
            except (TypeError, ValueError):
                raise ConfigError(f"端口格式无效 '{key}': {val}")
            if not 0 < port < 65536:
                raise ConfigError(f"端口超出范围 '{key}': {port}")
            return port

        def _to_seconds(key: str, default: float) -> float:
            """转换为正数秒"""
            val = _get(key, default)
            try:
                seconds = float(val)
            except (TypeError, ValueError):
                raise ConfigError(f"时间格式无效 '{key}': {val}")
            if seconds <= 0:
                raise ConfigError(f"时间必须为正数 '{key}': {seconds}")
            return seconds

        def _to_encoding(key: str) -> str:
            val = str(_get(key, "utf-8"))
            try:
                "".encode(val)
            except LookupError:
                raise ConfigError(f"未知的文本编码 '{key}': {val}")
            return val

        # --- 构建对象 ---
        return ConnectionConfig(
            host=str(_req("host")).strip(),
            port=_to_port("port"),
            connect_timeout=_to_seconds("connect_timeout", 5.0),
            receive_timeout=_to_seconds("receive_timeout", 5.0),
            reconnect_interval=_to_seconds("reconnect_interval", 1.0),
            encoding=_to_encoding("encoding"),
        )

    except Exception as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(f"配置生成失败: {e}") from e


def load_config_from_toml(file_path: Path, profile: str = "default") -> ConnectionConfig:
    """从 TOML 文件加载配置。

    支持多层级查找策略:
    1. [profile.xxx]: 优先查找指定的 profile 块。
    2. [amcp]: 单一服务器的简写配置块。
    3. Root: 兼容根目录直接配置。

    Args:
        file_path: TOML 文件路径。
        profile: 配置预设名。默认为 "default"。

    Returns:
        ConnectionConfig: 配置对象。

    Raises:
        ConfigError: 文件读取失败或 Profile 不存在。
    """
    if not file_path.exists():
        raise ConfigError(f"配置文件未找到: {file_path}")

    try:
        with open(file_path, "rb") as f:
            data = tomllib.load(f)
    except Exception as e:
        raise ConfigError(f"读取 TOML 失败: {e}") from e

    raw_config = {}

    if "profile" in data:
        if profile not in data["profile"]:
            raise ConfigError(f"未找到预设: [profile.{profile}]")
        raw_config = data["profile"][profile]

    elif "amcp" in data:
        if profile != "default":
            logger.warning(f"配置仅包含 [amcp] 节，忽略 profile='{profile}'。")
        raw_config = data["amcp"]
    else:
        raw_config = data

    return create_config_from_dict(raw_config)


def load_config_from_env(env_file: Path | None = None) -> ConnectionConfig:
    """从环境变量加载配置 (Docker/Cloud Friendly)。

    读取所有以 `AMCP_` 开头的环境变量并映射到配置字段，
    例如: `AMCP_HOST` -> `host`。

    Args:
        env_file: 可选的 .env 文件。文件中的值不会覆盖已存在的环境变量。

    Returns:
        ConnectionConfig: 配置对象。

    Raises:
        ConfigError: .env 文件不存在，或未检测到任何相关环境变量。
    """
    if env_file is not None:
        if not env_file.exists():
            raise ConfigError(f".env 文件未找到: {env_file}")
        load_dotenv(dotenv_path=env_file, override=False)
        logger.debug(f"已加载 .env 文件: {env_file}")

    # 字段映射表 (Config Field -> Env Suffix)
    env_map = {
        "host": "HOST",
        "port": "PORT",
        "connect_timeout": "CONNECT_TIMEOUT",
        "receive_timeout": "RECEIVE_TIMEOUT",
        "reconnect_interval": "RECONNECT_INTERVAL",
        "encoding": "ENCODING",
    }

    raw_data = {}

    for cfg_key, env_suffix in env_map.items():
        val = os.environ.get(f"{ENV_PREFIX}{env_suffix}")
        if val is not None:
            raw_data[cfg_key] = val

    if not raw_data:
        raise ConfigError(f"未检测到 {ENV_PREFIX} 前缀的环境变量")

    return create_config_from_dict(raw_data)
