"""用户输入的包标识解析

支持的形式:
  php82                               基础包（未完全指定变体）
  php82-nts-x64-vc16                  完整变体键
  php82-redis5.3.7                    扩展（挂载到 php82 的某个变体）
  php82-nts-x64-vc16-redis5.3.7       扩展（挂载到指定变体）

扩展标识: <name><version-prefix>，如 redis5.3.7 / redis5.3 / redis；
扩展名本身以数字结尾时（如 oci8）用 @ 分隔: oci8@3.3.0
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from phpvm.core.exceptions import InputFormatError

_VARIANT_PREFIX = r"php\d+-(?:nts|ts)-(?:x64|x86)-vc\d+"
_VARIANT_RE = re.compile(rf"^{_VARIANT_PREFIX}$")
_VARIANT_EXT_RE = re.compile(rf"^(?P<target>{_VARIANT_PREFIX})-(?P<ext>.+)$")
_BASE_RE = re.compile(r"^php\d{2,}$")
_BASE_EXT_RE = re.compile(r"^(?P<target>php\d{2,})-(?P<ext>.+)$")

_EXT_AT_RE = re.compile(r"^(?P<name>[a-zA-Z][a-zA-Z0-9_]*)@(?P<ver>\d+(?:\.\d+){0,3})$")
_EXT_RE = re.compile(r"^(?P<name>[a-zA-Z][a-zA-Z_]*?)(?P<ver>\d+(?:\.\d+){0,3})?$")


@dataclass(frozen=True)
class PackageArgument:
    """拆分后的包参数

    target 为基础包名（php82）或完整变体键；extension 为空表示基础包本身。
    """

    target: str
    extension: str = ""

    @property
    def is_extension(self) -> bool:
        return bool(self.extension)


@dataclass(frozen=True)
class ExtensionIdentifier:
    name: str
    version_prefix: str
    raw: str


def parse_package_argument(text: str) -> PackageArgument:
    value = (text or "").strip().lower()
    if _VARIANT_RE.match(value) or _BASE_RE.match(value):
        return PackageArgument(target=value)
    for pattern in (_VARIANT_EXT_RE, _BASE_EXT_RE):
        m = pattern.match(value)
        if m:
            return PackageArgument(target=m.group("target"), extension=m.group("ext"))
    raise InputFormatError(
        f"无法识别的包名 '{text}'，应形如 php82、php82-nts-x64-vc16 或 php82-redis5.3.7"
    )


def parse_extension_identifier(text: str) -> ExtensionIdentifier:
    value = (text or "").strip()
    m = _EXT_AT_RE.match(value) or _EXT_RE.match(value)
    if m is None or not m.group("name"):
        raise InputFormatError(
            f"无法从 '{text}' 解析扩展名与版本（示例: redis5.3.7 / redis / oci8@3.3.0）"
        )
    return ExtensionIdentifier(
        name=m.group("name").lower(),
        version_prefix=m.group("ver") or "",
        raw=value,
    )
