"""文档文件统一读写工具

注册表使用 YAML，缓存使用 JSON，二者共用原子写入逻辑：
统一 encoding="utf-8"、空值保护、目录自动创建、原子写入。
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# 文档最大大小限制 (32MB)，PECL 全量缓存可能较大
MAX_DOCUMENT_SIZE = 32 * 1024 * 1024


def atomic_write(path: Path, content: str) -> None:
    """原子写入文件：先写临时文件再 rename，防止中途崩溃导致损坏

    参数:
        path: 目标文件路径
        content: 要写入的内容

    异常:
        OSError: 文件写入或移动失败
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(
        dir=str(path.parent), suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(content)
        os.replace(tmp, str(path))
    except Exception:
        # 只捕获普通异常，不拦截 KeyboardInterrupt/SystemExit
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


def _check_size(p: Path) -> None:
    file_size = p.stat().st_size
    if file_size > MAX_DOCUMENT_SIZE:
        raise ValueError(
            f"文件过大: {p} ({file_size} 字节), "
            f"超过限制 {MAX_DOCUMENT_SIZE} 字节"
        )


def load_yaml(path: str | Path) -> dict[str, Any]:
    """安全读取 YAML 文件

    返回:
        dict: 解析后的字典。文件不存在、为空、或内容不是字典时返回空字典

    异常:
        yaml.YAMLError: YAML 格式错误
        OSError: IO 错误
        ValueError: 文件过大
    """
    p = Path(path)
    if not p.exists():
        return {}
    _check_size(p)

    try:
        with open(p, encoding="utf-8") as f:
            result = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error("解析 YAML 文件失败: %s, 错误: %s", path, e)
        raise
    except OSError as e:
        logger.error("读取文件失败: %s, 错误: %s", path, e)
        raise

    if result is None:
        return {}
    if not isinstance(result, dict):
        logger.warning(
            "%s 内容不是字典类型 (实际类型: %s)，返回空字典",
            path, type(result).__name__,
        )
        return {}
    return result


def save_yaml(path: str | Path, data: Any) -> None:
    """原子写入 YAML 文件（保持键顺序，允许 Unicode）"""
    p = Path(path)
    try:
        content = yaml.safe_dump(
            data, default_flow_style=False,
            allow_unicode=True, sort_keys=False,
        )
        atomic_write(p, content)
    except yaml.YAMLError as e:
        logger.error("序列化 YAML 数据失败: %s, 错误: %s", path, e)
        raise
    except OSError as e:
        logger.error("写入文件失败: %s, 错误: %s", path, e)
        raise


def load_json(path: str | Path) -> dict[str, Any]:
    """读取 JSON 文档；不存在、损坏或非字典时返回空字典"""
    p = Path(path)
    if not p.exists():
        return {}
    _check_size(p)
    try:
        data = json.loads(p.read_text(encoding="utf-8") or "{}")
    except json.JSONDecodeError as e:
        logger.warning("JSON 文档损坏，按空文档处理: %s (%s)", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def save_json(path: str | Path, data: Any) -> None:
    """原子写入 JSON 文档"""
    content = json.dumps(data, indent=2, ensure_ascii=False)
    atomic_write(Path(path), content + "\n")
