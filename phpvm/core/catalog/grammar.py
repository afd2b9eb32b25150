"""构建文件名语法

基础构建:  php-<ver>(-nts)?-Win32-(vc|vs)<N>-(x64|x86).zip
           没有 -nts 标记即视为 TS 构建。
扩展构建:  php_<name>-<extver>-<phpMM>-(nts|ts)-(vc|vs)<N>-(x64|x86).(zip|dll)
扩展版本目录: 纯数字点分，2~4 段。

不匹配的文件名返回 None，由调用方静默跳过。
"""

from __future__ import annotations

import re

from phpvm.core.models import BaseBuildRecord, ExtensionBuildRecord

BASE_BUILD_RE = re.compile(
    r"^php-(?P<version>\d+\.\d+\.\d+)(?P<nts>-nts)?-Win32-"
    r"(?:vc|vs)(?P<compiler>\d+)-(?P<arch>x64|x86)\.zip$",
    re.IGNORECASE,
)

EXTENSION_BUILD_RE = re.compile(
    r"^php_(?P<name>[a-z0-9_]+)-(?P<version>\d+\.\d+\.\d+(?:\.\d+)?)-"
    r"(?P<php>\d+\.\d+)-(?P<ts>nts|ts)-(?:vc|vs)(?P<compiler>\d+)-"
    r"(?P<arch>x64|x86)\.(?P<ext>zip|dll)$",
    re.IGNORECASE,
)

VERSION_DIR_RE = re.compile(r"^\d+(?:\.\d+){1,3}$")


def parse_base_filename(file_name: str, base_url: str) -> BaseBuildRecord | None:
    """解析基础构建文件名，download_url = 列表地址 + 文件名"""
    m = BASE_BUILD_RE.match(file_name)
    if m is None:
        return None
    version = m.group("version")
    major, minor, _ = version.split(".")
    return BaseBuildRecord(
        full_version=version,
        major_minor=f"{major}.{minor}",
        thread_safety="nts" if m.group("nts") else "ts",
        architecture=m.group("arch").lower(),
        compiler_tag=int(m.group("compiler")),
        download_url=base_url + file_name,
    )


def parse_extension_filename(
    file_name: str, extension_name: str, version_url: str,
) -> ExtensionBuildRecord | None:
    """解析扩展构建文件名；extension_name 取请求的扩展名（小写）"""
    m = EXTENSION_BUILD_RE.match(file_name)
    if m is None:
        return None
    return ExtensionBuildRecord(
        extension_name=extension_name.lower(),
        extension_version=m.group("version"),
        php_major_minor=m.group("php"),
        thread_safety=m.group("ts").lower(),
        architecture=m.group("arch").lower(),
        compiler_tag=int(m.group("compiler")),
        artifact_file_name=file_name,
        download_url=version_url + file_name,
    )


def is_version_dir(name: str) -> bool:
    return bool(VERSION_DIR_RE.match(name))
