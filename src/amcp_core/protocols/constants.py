# File: src/amcp_core/protocols/constants.py
"""
AMCP 协议层 - 常量定义

本模块定义了所有协议相关的状态码、行终止符和固定命令。
采用命名空间 (Class Namespace) 组织。
"""

from ..exceptions import ErrorKind

# 默认 AMCP 端口
DEFAULT_PORT = 5250

# 行终止符 (请求与响应一致)
CRLF = "\r\n"


class ReturnCode:
    """状态行的三位状态码"""

    # 成功 (带响应体)
    OK_MULTILINE = 200  # 多行，以空行结束
    OK_DATA = 201  # 单行数据

    # 客户端错误
    COMMAND_UNKNOWN = 400
    ILLEGAL_COMMAND = 401
    PARAMETER_MISSING = 402
    ILLEGAL_PARAMETER = 403
    MEDIA_NOT_FOUND = 404

    # 服务器错误
    INTERNAL_SERVER_ERROR = 500
    INTERNAL_SERVER_ERROR_ALT = 501
    MEDIA_UNREADABLE = 502


# 错误状态码 -> 错误分类
# 500 与 501 语义相同，统一归为服务器内部错误
ERROR_CODES: dict[int, ErrorKind] = {
    ReturnCode.COMMAND_UNKNOWN: ErrorKind.COMMAND_NOT_UNDERSTOOD,
    ReturnCode.ILLEGAL_COMMAND: ErrorKind.ILLEGAL_COMMAND,
    ReturnCode.PARAMETER_MISSING: ErrorKind.PARAMETER_MISSING,
    ReturnCode.ILLEGAL_PARAMETER: ErrorKind.ILLEGAL_PARAMETER,
    ReturnCode.MEDIA_NOT_FOUND: ErrorKind.MEDIA_NOT_FOUND,
    ReturnCode.INTERNAL_SERVER_ERROR: ErrorKind.INTERNAL_SERVER_ERROR,
    ReturnCode.INTERNAL_SERVER_ERROR_ALT: ErrorKind.INTERNAL_SERVER_ERROR,
    ReturnCode.MEDIA_UNREADABLE: ErrorKind.MEDIA_UNREADABLE,
}


class Command:
    """库内部使用的固定命令"""

    VERSION = "VERSION"
    BYE = "BYE"
