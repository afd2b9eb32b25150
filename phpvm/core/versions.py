"""点分数字版本比较

按数值逐段比较（"5.3.10" > "5.3.9"），缺失的段视为 0。
"""

from __future__ import annotations

import re

_STRICT_PATCH_RE = re.compile(r"^\d+\.\d+\.\d+$")
_NUMERIC_RE = re.compile(r"\d+")


def version_key(version: str) -> tuple[int, ...]:
    """把版本字符串转换为可比较的整数元组，末尾的 0 段被裁掉"""
    parts = [int(p) for p in _NUMERIC_RE.findall(version.split("-", 1)[0])]
    while parts and parts[-1] == 0:
        parts.pop()
    return tuple(parts)


def compare_versions(a: str, b: str) -> int:
    """a < b 返回 -1，相等返回 0，a > b 返回 1"""
    ka, kb = version_key(a), version_key(b)
    return (ka > kb) - (ka < kb)


def is_strict_patch(version: str) -> bool:
    """是否为 M.m.p 形式的完整补丁版本"""
    return bool(_STRICT_PATCH_RE.match(version or ""))


def is_newer_patch(remote: str, installed: str) -> bool:
    """远端补丁是否比已安装的新；已安装版本号无效时视为更旧"""
    if not is_strict_patch(installed):
        return True
    return compare_versions(remote, installed) > 0
