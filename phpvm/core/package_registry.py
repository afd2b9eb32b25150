"""已安装包注册表

文档结构:
    packages:
      php82-nts-x64-vc16:
        current_patch_version: 8.2.10
        install_path: ...
        thread_safety: nts
        architecture: x64
        compiler_tag: 16
        extensions:
          php82-nts-x64-vc16-redis5.3.7:
            pecl_name: redis
            ...

每个变体键最多对应一个已安装包；扩展键在包内唯一。
"""

from __future__ import annotations

import logging
from typing import Any

from phpvm.core.exceptions import InputFormatError, NotFoundError
from phpvm.core.models import InstalledExtension, InstalledPackage
from phpvm.core.registry import YamlRegistry

logger = logging.getLogger(__name__)


class PackageRegistry(YamlRegistry):
    """已安装包注册表"""

    section_key = "packages"

    def get_package(self, variant_key: str) -> InstalledPackage | None:
        entry = self._get_raw(variant_key)
        if entry is None:
            return None
        return InstalledPackage.from_entry(variant_key, entry)

    def require_package(self, variant_key: str) -> InstalledPackage:
        pkg = self.get_package(variant_key)
        if pkg is None:
            raise NotFoundError(f"变体 '{variant_key}' 未安装")
        return pkg

    def upsert_package(
        self, variant_key: str, data: InstalledPackage | dict[str, Any],
    ) -> dict[str, Any]:
        """写入或更新包；传入 dict 时与现有条目合并（extensions 保留）"""
        if isinstance(data, InstalledPackage):
            entry = data.to_entry()
        else:
            entry = dict(self._get_raw(variant_key) or {})
            entry.update(data)
            entry.setdefault("extensions", {})
        self._put(variant_key, entry)
        logger.debug("注册表更新包: %s", variant_key)
        return entry

    def remove_package(self, variant_key: str) -> bool:
        removed = self._remove(variant_key)
        if removed:
            logger.debug("注册表移除包: %s", variant_key)
        return removed

    def add_extension(
        self, variant_key: str, ext_key: str, data: InstalledExtension | dict[str, Any],
    ) -> None:
        entry = self._get_raw(variant_key)
        if entry is None:
            raise NotFoundError(f"变体 '{variant_key}' 未安装")
        exts = entry.get("extensions")
        if not isinstance(exts, dict):
            exts = {}
            entry["extensions"] = exts
        exts[ext_key] = data.to_entry() if isinstance(data, InstalledExtension) else dict(data)

    def remove_extension(self, variant_key: str, ext_key: str) -> bool:
        entry = self._get_raw(variant_key)
        if entry is None:
            return False
        exts = entry.get("extensions") or {}
        if ext_key not in exts:
            return False
        del exts[ext_key]
        return True

    def list_packages(self) -> list[InstalledPackage]:
        return [
            InstalledPackage.from_entry(k, v)
            for k, v in sorted(self._section().items()) if v is not None
        ]

    def find_variants(self, major_minor: str) -> list[InstalledPackage]:
        """某个 major.minor 下的全部已安装变体，跳过键无法解析的条目"""
        found: list[InstalledPackage] = []
        for pkg in self.list_packages():
            try:
                if pkg.major_minor == major_minor:
                    found.append(pkg)
            except InputFormatError:
                logger.warning("注册表中的变体键无效，已跳过: %s", pkg.variant_key)
        return found
