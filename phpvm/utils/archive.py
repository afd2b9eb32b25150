"""zip 压缩包处理

三种用法:
  - extract_all:         全新安装，整体解压
  - overwrite_except:    原地升级，逐个覆盖但跳过受保护文件
  - extract_first_match: 扩展安装，取第一个后缀匹配的成员

所有成员路径都会校验，禁止穿越到目标目录之外。
"""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path, PurePosixPath

from phpvm.core.exceptions import ArchiveError, FilesystemError
from phpvm.utils.deadline import Deadline

logger = logging.getLogger(__name__)


def _open(archive: Path) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(archive)
    except (zipfile.BadZipFile, OSError) as e:
        raise ArchiveError(f"无法打开压缩包: {archive} ({e})") from e


def _safe_target(root: Path, member: str) -> Path:
    """计算成员的落盘路径，拒绝绝对路径与 .. 穿越"""
    rel = PurePosixPath(member.replace("\\", "/"))
    if rel.is_absolute() or ".." in rel.parts or (rel.parts and ":" in rel.parts[0]):
        raise ArchiveError(f"压缩包成员路径非法: {member}")
    return root.joinpath(*rel.parts)


def _write_member(zf: zipfile.ZipFile, info: zipfile.ZipInfo, dest: Path) -> None:
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        with zf.open(info) as src, open(dest, "wb") as out:
            while True:
                chunk = src.read(64 * 1024)
                if not chunk:
                    break
                out.write(chunk)
    except (zipfile.BadZipFile, zipfile.LargeZipFile) as e:
        raise ArchiveError(f"读取成员失败: {info.filename} ({e})") from e
    except OSError as e:
        raise FilesystemError(f"写入文件失败: {dest} ({e})") from e


def extract_all(
    archive: Path, target: Path, *, deadline: Deadline | None = None,
) -> int:
    """解压全部成员到 target，返回写入的文件数"""
    return overwrite_except(archive, target, protected=(), deadline=deadline)


def overwrite_except(
    archive: Path,
    target: Path,
    *,
    protected: tuple[str, ...],
    deadline: Deadline | None = None,
) -> int:
    """逐个成员覆盖写入 target，跳过相对路径与 protected 同名（不区分大小写）的文件

    非事务：中途失败会留下新旧混合的文件。
    """
    deadline = deadline or Deadline.never()
    skip = {p.lower() for p in protected}
    written = 0
    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"创建目录失败: {target} ({e})") from e

    with _open(archive) as zf:
        for info in zf.infolist():
            deadline.check(f"解压 {archive.name}")
            name = info.filename.replace("\\", "/")
            if name.lower() in skip:
                logger.info("  保留现有文件: %s", name)
                continue
            dest = _safe_target(target, name)
            if info.is_dir():
                try:
                    dest.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    raise FilesystemError(f"创建目录失败: {dest} ({e})") from e
                continue
            _write_member(zf, info, dest)
            written += 1
    logger.info("解压完成: %s -> %s (%d 个文件)", archive.name, target, written)
    return written


def extract_first_match(
    archive: Path,
    target_dir: Path,
    *,
    suffix: str,
    deadline: Deadline | None = None,
) -> str:
    """提取第一个文件名以 suffix 结尾的成员到 target_dir，返回落盘文件名

    多个成员匹配时取第一个，不做进一步消歧。
    """
    deadline = deadline or Deadline.never()
    with _open(archive) as zf:
        for info in zf.infolist():
            deadline.check(f"解压 {archive.name}")
            if info.is_dir() or not info.filename.lower().endswith(suffix.lower()):
                continue
            file_name = PurePosixPath(info.filename.replace("\\", "/")).name
            _write_member(zf, info, target_dir / file_name)
            logger.info("已提取: %s -> %s", info.filename, target_dir / file_name)
            return file_name
    raise ArchiveError(f"压缩包中没有 {suffix} 文件: {archive.name}")
