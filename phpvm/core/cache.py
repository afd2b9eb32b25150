"""目录抓取结果缓存

缓存文档为单个 JSON 文件:
    {bucket_key: {"timestamp": <epoch 秒>, "payload": [...]}}

缓存策略:
  - 桶时间戳在 TTL 内且未强制刷新 → 直接返回持久化的 payload
  - 否则调用 refresh_fn 重新抓取，写回 {timestamp: now, payload}
  - 整文档读-改-写，无文件锁；多进程并发刷新可能互相覆盖
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Callable

from phpvm.core.exceptions import FilesystemError
from phpvm.utils.yaml_io import load_json, save_json

logger = logging.getLogger(__name__)

ALL_BUILDS_BUCKET = "all_builds"
PECL_INDEX_BUCKET = "pecl_index"


def pecl_bucket(extension_name: str) -> str:
    """每个扩展独立一个缓存桶"""
    return f"pecl:{extension_name.lower()}"


class CacheStore:
    """带 TTL 的键控缓存"""

    def __init__(
        self, cache_file: str | Path, *, clock: Callable[[], float] = time.time,
    ) -> None:
        self.cache_file = Path(cache_file)
        self._clock = clock

    def _load(self) -> dict[str, Any]:
        try:
            return load_json(self.cache_file)
        except (OSError, ValueError) as e:
            raise FilesystemError(f"读取缓存失败: {self.cache_file} ({e})") from e

    def _save(self, data: dict[str, Any]) -> None:
        try:
            save_json(self.cache_file, data)
        except OSError as e:
            raise FilesystemError(f"写入缓存失败: {self.cache_file} ({e})") from e

    def get_or_refresh(
        self,
        bucket_key: str,
        ttl_seconds: int,
        force_refresh: bool,
        refresh_fn: Callable[[], list[Any]],
    ) -> list[Any]:
        """命中未过期缓存则返回，否则刷新并持久化"""
        now = self._clock()
        if not force_refresh:
            bucket = self._load().get(bucket_key)
            if isinstance(bucket, dict):
                ts = bucket.get("timestamp")
                if isinstance(ts, (int, float)) and now - ts < ttl_seconds:
                    logger.debug("缓存命中: %s", bucket_key)
                    payload: list[Any] = bucket.get("payload") or []
                    return payload

        logger.info("缓存%s，重新抓取: %s", "强制刷新" if force_refresh else "未命中", bucket_key)
        payload = refresh_fn()

        # 刷新可能耗时较长，写回前重新读取，尽量保留其他桶
        data = self._load()
        data[bucket_key] = {"timestamp": int(now), "payload": payload}
        self._save(data)
        return payload

    def invalidate(self, bucket_key: str | None = None) -> bool:
        """清除单个桶或全部缓存，返回是否有内容被清除"""
        data = self._load()
        if bucket_key is None:
            if not data:
                return False
            self._save({})
            logger.info("缓存已清空: %s", self.cache_file)
            return True
        if bucket_key not in data:
            return False
        del data[bucket_key]
        self._save(data)
        logger.info("缓存桶已清除: %s", bucket_key)
        return True
