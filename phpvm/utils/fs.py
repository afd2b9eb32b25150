"""文件系统辅助：尽力删除 + php.ini 行级修改

ini 修改按行文本处理，不做结构化解析：
  - 追加：在文件末尾追加一行指令
  - 删除：删除第一行包含给定子串的行
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from phpvm.core.exceptions import FilesystemError

logger = logging.getLogger(__name__)


def remove_tree_best_effort(root: Path) -> list[str]:
    """自底向上删除目录树，单个文件 / 目录删除失败只记录告警

    Windows 上文件被占用是常见情况，不中断整体删除。
    返回删除失败的路径列表。
    """
    failures: list[str] = []
    if not root.is_dir():
        return failures

    for dirpath, dirnames, filenames in os.walk(root, topdown=False):
        current = Path(dirpath)
        for name in filenames:
            path = current / name
            try:
                path.unlink()
            except OSError as e:
                logger.warning("删除文件失败: %s (%s)", path, e)
                failures.append(str(path))
        for name in dirnames:
            path = current / name
            try:
                if path.is_symlink():
                    path.unlink()
                else:
                    path.rmdir()
            except OSError as e:
                logger.warning("删除目录失败: %s (%s)", path, e)
                failures.append(str(path))
    try:
        root.rmdir()
    except OSError as e:
        logger.warning("删除目录失败: %s (%s)", root, e)
        failures.append(str(root))
    return failures


def remove_file_best_effort(path: Path) -> bool:
    """删除单个文件；不存在或删除失败时记录告警并返回 False"""
    if not path.exists():
        logger.warning("文件不存在，跳过删除: %s", path)
        return False
    try:
        path.unlink()
    except OSError as e:
        logger.warning("删除文件失败: %s (%s)", path, e)
        return False
    return True


def append_ini_line(ini_path: Path, line: str) -> None:
    """在 ini 末尾追加一行（无条件追加，重复调用会产生重复行）"""
    try:
        existing = ini_path.read_bytes() if ini_path.exists() else b""
        prefix = "" if not existing or existing.endswith(b"\n") else "\n"
        with open(ini_path, "a", encoding="utf-8", newline="") as f:
            f.write(f"{prefix}{line}\n")
    except OSError as e:
        raise FilesystemError(f"写入 ini 失败: {ini_path} ({e})") from e


def remove_first_ini_line(ini_path: Path, needle: str) -> bool:
    """删除第一行包含 needle 的行，返回是否删除了内容

    只删除一处；重复追加产生的其余行保持不变。
    """
    if not needle:
        return False
    try:
        with open(ini_path, encoding="utf-8", errors="surrogateescape", newline="") as f:
            text = f.read()
    except OSError as e:
        logger.warning("读取 ini 失败: %s (%s)", ini_path, e)
        return False

    lines = text.splitlines(keepends=True)
    for idx, current in enumerate(lines):
        if needle in current:
            del lines[idx]
            try:
                with open(ini_path, "w", encoding="utf-8",
                          errors="surrogateescape", newline="") as f:
                    f.write("".join(lines))
            except OSError as e:
                logger.warning("写回 ini 失败: %s (%s)", ini_path, e)
                return False
            return True
    return False
