"""目录列表解析

远端是 Apache / nginx 风格的 HTML 目录页，这里只提取 href 值，
不依赖页面结构，需要时可替换为结构化解析器。
"""

from __future__ import annotations

import re
from urllib.parse import unquote

_HREF_RE = re.compile(r"""href\s*=\s*["']([^"']+)["']""", re.IGNORECASE)

# 导航类链接：上级目录 / 当前目录 / 站点根
_NAVIGATION = frozenset(("../", "./", "..", ".", "/"))


class HrefListingParser:
    """以正则提取 href 的目录列表解析器"""

    def parse(self, text: str) -> list[str]:
        seen: set[str] = set()
        entries: list[str] = []
        for raw in _HREF_RE.findall(text):
            href = unquote(raw.strip())
            if not href or href in _NAVIGATION or href.startswith(("?", "#")):
                continue
            if "?" in href:
                continue
            if href not in seen:
                seen.add(href)
                entries.append(href)
        return entries


def entry_name(entry: str) -> str:
    """'/downloads/releases/php-8.2.10-Win32-vs16-x64.zip' -> 文件名；目录项去掉末尾 /"""
    return entry.rstrip("/").rsplit("/", 1)[-1]
