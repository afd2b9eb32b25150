"""统一异常体系

所有业务异常继承 PvmError，每个异常携带 code 与对应的操作结果状态 status。
CLI 层据此输出友好提示，调用方可通过 OperationResult.from_error 转为结果对象。
"""

from __future__ import annotations

from typing import Any


class PvmError(Exception):
    """phpvm 基础异常"""

    code: str = "UNKNOWN"
    status: str = "operation-failed"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(PvmError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class InputFormatError(PvmError):
    """标识符不符合任何已知语法"""

    code = "INPUT_FORMAT_ERROR"
    status = "rejected-input"


class NotFoundError(PvmError):
    """注册表中无对应条目，或远端无匹配构建"""

    code = "NOT_FOUND"
    status = "not-found"


class AmbiguousSelectionError(PvmError):
    """存在多个可选候选项且无法自动决定"""

    code = "AMBIGUOUS_SELECTION"
    status = "ambiguous"

    def __init__(self, message: str, candidates: list[Any] | None = None) -> None:
        super().__init__(message)
        self.candidates = candidates or []


class TransportError(PvmError):
    """HTTP 非成功响应或网络故障，不自动重试"""

    code = "TRANSPORT_ERROR"

    def __init__(self, message: str, url: str = "", status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ArchiveError(PvmError):
    """压缩包无法打开，或缺少期望的成员文件"""

    code = "ARCHIVE_ERROR"


class FilesystemError(PvmError):
    """目录创建 / 文件写入失败"""

    code = "FILESYSTEM_ERROR"


class DeadlineExceededError(PvmError):
    """操作超出截止时间"""

    code = "DEADLINE_EXCEEDED"
