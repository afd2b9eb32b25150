"""外部协作者协议定义

HTTP 传输、目录列表解析、交互式选择均以 Protocol 抽象，
核心逻辑只依赖这些接口，测试时注入假实现即可，无需 patch 网络或终端。
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from phpvm.utils.deadline import Deadline


# =========================================================================
# 传输协议
# =========================================================================

class Transport(Protocol):
    """HTTP 传输协议

    非成功响应或网络故障一律抛出 TransportError，不做内部重试。
    """

    def get_text(self, url: str, *, deadline: Deadline | None = None) -> str:
        """GET 文本页面（目录列表）"""
        ...

    def head(self, url: str, *, deadline: Deadline | None = None) -> int:
        """HEAD 请求，返回状态码"""
        ...

    def download(
        self, url: str, dest: Path, *, deadline: Deadline | None = None,
    ) -> Path:
        """GET 并流式写入 dest，返回 dest"""
        ...


# =========================================================================
# 目录列表解析协议
# =========================================================================

class DirectoryListingParser(Protocol):
    """目录列表解析协议

    输入原始列表文本，输出有序、去重的条目名（不含上级目录 / 查询串链接）。
    """

    def parse(self, text: str) -> list[str]:
        ...


# =========================================================================
# 交互选择协议
# =========================================================================

class SelectionPrompt(Protocol):
    """交互式选择 / 确认协议

    无头实现必须给出确定性的默认选择，不得阻塞。
    """

    def choose(self, question: str, options: list[str], default_index: int = 0) -> int:
        """从 options 中选择一项，返回下标"""
        ...

    def confirm(self, question: str, default: bool = False) -> bool:
        ...
