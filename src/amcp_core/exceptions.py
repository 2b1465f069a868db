# File: src/amcp_core/exceptions.py
"""
AMCP 核心库 - 异常体系 (Exceptions)

定义库内统一使用的异常类，以便上层应用能进行精细的错误处理。
只有 TransportError 会触发连接重置，其余异常仅使当前命令失败。
"""

from enum import Enum


class AmcpError(Exception):
    """AMCP 核心库所有内部异常的基类。

    上层应用可以通过捕获此异常来处理所有由 amcp-core 抛出的已知错误。
    """

    pass


class ConfigError(AmcpError):
    """配置加载或校验失败。

    触发场景:
    1. 缺少必要字段 (如 host)。
    2. 字段格式错误 (如端口越界、超时为负数)。
    3. 找不到配置文件或 .env 文件。
    """

    pass


class TransportError(AmcpError):
    """传输层面的错误 (I/O 级别)。

    触发场景:
    1. 连接被拒绝或连接超时。
    2. 接收超时 (对端无响应)。
    3. 读取中途对端断开 (读到 EOF 但未见 CRLF)。
    4. 任何底层 Socket 错误。

    注意: 此类错误总会导致 Transport 被重置，下一条命令会自动重连。
    """

    pass


class ErrorKind(Enum):
    """服务器返回的错误状态码分类。"""

    COMMAND_NOT_UNDERSTOOD = "command_not_understood"
    ILLEGAL_COMMAND = "illegal_command"
    PARAMETER_MISSING = "parameter_missing"
    ILLEGAL_PARAMETER = "illegal_parameter"
    MEDIA_NOT_FOUND = "media_not_found"
    INTERNAL_SERVER_ERROR = "internal_server_error"
    MEDIA_UNREADABLE = "media_unreadable"

    @property
    def description(self) -> str:
        """获取错误类型对应的人类可读描述。"""
        _DESC_MAP = {
            "command_not_understood": "命令无法识别 (command not understood)",
            "illegal_command": "非法命令 (illegal command)",
            "parameter_missing": "缺少参数 (parameter missing)",
            "illegal_parameter": "非法参数 (illegal parameter)",
            "media_not_found": "媒体文件未找到 (media file not found)",
            "internal_server_error": "服务器内部错误 (internal server error)",
            "media_unreadable": "媒体文件不可读 (media file unreadable)",
        }
        return _DESC_MAP[self.value]


class ProtocolError(AmcpError):
    """服务器以错误状态码拒绝了命令 (业务层面的失败)。

    连接本身是健康的，因此不会触发重置。
    """

    def __init__(self, kind: ErrorKind, code: int, status_line: str) -> None:
        """初始化协议错误。

        Args:
            kind: 错误分类。
            code: 原始三位状态码 (500 与 501 共用同一分类，靠此字段区分)。
            status_line: 服务器返回的完整状态行。
        """
        super().__init__(f"{kind.description}: {status_line}")
        self.kind = kind
        self.code = code
        self.status_line = status_line


class MalformedResponseError(AmcpError):
    """响应内容无法解析。

    触发场景:
    1. VERSION 响应不符合 `gen.maj.min.rev tag` 格式。
    2. 状态行不以三位数字状态码开头。
    """

    pass


class DisposedError(AmcpError):
    """连接已经开始关闭，拒绝新的操作。"""

    pass
