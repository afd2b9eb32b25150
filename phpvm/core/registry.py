"""YAML 注册表基类

基于单个 YAML 文档的注册表共享加载、字段访问、增删改查逻辑。
与自动保存不同，这里的修改只落在内存文档上，由调用方在全部副作用
完成后显式调用 save() 做一次整文档重写。

子类只需指定 section_key。
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from phpvm.core.exceptions import ConfigError, FilesystemError
from phpvm.utils.yaml_io import load_yaml, save_yaml

logger = logging.getLogger(__name__)


class YamlRegistry:
    """YAML 文件注册表基类

    子类用法:
        class MyRegistry(YamlRegistry):
            section_key = "items"
    """

    section_key: str = "entries"

    def __init__(self, registry_file: str | Path) -> None:
        self.registry_file = Path(registry_file)
        try:
            self._data: dict[str, Any] = load_yaml(self.registry_file)
        except (yaml.YAMLError, OSError, ValueError) as e:
            raise ConfigError(f"读取注册表失败: {self.registry_file} ({e})") from e

    def _section(self) -> dict[str, dict[str, Any]]:
        """获取当前 section 字典（自动创建）"""
        section = self._data.get(self.section_key)
        if not isinstance(section, dict):
            section = {}
            self._data[self.section_key] = section
        return section

    def save(self) -> None:
        """整文档持久化（无文件锁，多进程同时写入会丢失更新）"""
        try:
            save_yaml(self.registry_file, self._data)
        except OSError as e:
            raise FilesystemError(f"写入注册表失败: {self.registry_file} ({e})") from e
        logger.debug("注册表已保存: %s", self.registry_file)

    def _put(self, name: str, entry: dict[str, Any]) -> dict[str, Any]:
        self._section()[name] = entry
        return entry

    def _get_raw(self, name: str) -> dict[str, Any] | None:
        return self._section().get(name)

    def _remove(self, name: str) -> bool:
        section = self._section()
        if name not in section:
            return False
        del section[name]
        return True
