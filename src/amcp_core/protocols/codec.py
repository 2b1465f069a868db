# File: src/amcp_core/protocols/codec.py
"""
AMCP 协议层 - 编解码 (Codec)

负责命令行的编码、状态行的分类以及响应体的重组。
行的读取由调用方注入 (read_line)，本模块不接触 socket。

响应体的分帧完全由状态行的三位状态码决定:
- 201: 紧跟一行数据。
- 200: 逐行读取，直到读到空行 (空行为终止符，不计入响应体)。
- 400~404 / 500~502: 失败，不读取响应体。
- 其他: 不读取响应体，状态行本身即为唯一结果。
"""

import logging
import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from ..exceptions import MalformedResponseError, ProtocolError
from .constants import CRLF, ERROR_CODES, ReturnCode

logger = logging.getLogger(__name__)

LineReader = Callable[[], str]

_STATUS_RE = re.compile(r"^(\d{3})(?:\s|$)")


@dataclass(frozen=True)
class Response:
    """一次完整的响应。

    Attributes:
        status: 状态行 (不含 CRLF)。
        code: 三位状态码。
        lines: 按状态码分帧后的响应体。
    """

    status: str
    code: int
    lines: tuple[str, ...]


def encode_command(command: str, encoding: str = "utf-8") -> bytes:
    """将一条命令编码为以 CRLF 结尾的字节流。

    Raises:
        ValueError: 命令中包含换行符 (会破坏行协议的分帧)。
    """
    if "\r" in command or "\n" in command:
        raise ValueError(f"命令中不允许包含换行符: {command!r}")
    return (command + CRLF).encode(encoding)


def parse_status_code(line: str) -> int | None:
    """提取状态行开头的三位状态码，不存在时返回 None。"""
    match = _STATUS_RE.match(line)
    if not match:
        return None
    return int(match.group(1))


def read_status(read_line: LineReader) -> str:
    """读取并分类状态行。

    Args:
        read_line: 读取一行 (不含 CRLF) 的函数，EOF 时应抛出 TransportError。

    Returns:
        str: 状态行。

    Raises:
        ProtocolError: 状态码属于已知错误码。
        MalformedResponseError: 状态行不以三位状态码开头。
    """
    status = read_line()
    code = parse_status_code(status)
    if code is None:
        raise MalformedResponseError(f"无效的状态行: {status!r}")

    kind = ERROR_CODES.get(code)
    if kind is not None:
        logger.debug(f"服务器返回错误状态: {status}")
        raise ProtocolError(kind, code, status)

    return status


def iter_body(status: str, read_line: LineReader) -> Iterator[str]:
    """按状态码逐行产出响应体。

    状态行须已经过 read_status 校验。
    """
    code = parse_status_code(status)

    if code == ReturnCode.OK_DATA:
        yield read_line()
    elif code == ReturnCode.OK_MULTILINE:
        while True:
            line = read_line()
            if line == "":
                break
            yield line
    else:
        # 未识别的状态码: 状态行即为结果
        yield status


def read_response(read_line: LineReader) -> Response:
    """读取一个完整响应。"""
    status = read_status(read_line)
    lines = tuple(iter_body(status, read_line))
    return Response(status=status, code=parse_status_code(status), lines=lines)
