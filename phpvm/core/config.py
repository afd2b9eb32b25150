"""集中配置管理

所有路径、远端地址与行为开关集中在 Config 中，由入口显式构造后注入容器，
不读取任何进程级全局状态。支持从 YAML 文件加载 + 编程式覆盖。
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from phpvm.core.exceptions import ConfigError, InputFormatError
from phpvm.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

PVM_DIR_NAME = ".pvm"
SETTINGS_FILE_NAME = "settings.yml"

RELEASES_URL = "https://windows.php.net/downloads/releases/"
ARCHIVES_URL = "https://windows.php.net/downloads/releases/archives/"
PECL_BASE_URL = "https://downloads.php.net/~windows/pecl/releases/"

CACHE_TTL_SECONDS = 86400


@dataclass
class Config:
    """phpvm 全局配置"""

    # 目录（留空则由 base_dir/.pvm 推导）
    base_dir: str = "."
    pvm_dir: str = ""
    registry_file: str = ""
    cache_file: str = ""
    packages_dir: str = ""

    # 远端来源
    releases_url: str = RELEASES_URL
    archives_url: str = ARCHIVES_URL
    pecl_base_url: str = PECL_BASE_URL

    # 缓存 / 网络
    cache_ttl: int = CACHE_TTL_SECONDS
    http_timeout: int = 60
    operation_timeout: int = 0  # 秒，0 表示不限制
    min_archive_bytes: int = 10000

    # 安装布局
    ini_file: str = "php.ini"
    ini_template: str = "php.ini-production"
    ext_dir: str = "ext"
    binary_suffix: str = ".dll"

    # 扩展匹配是否要求编译器版本一致
    match_compiler_tag: bool = False

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict = field(default_factory=dict)

    def __post_init__(self) -> None:
        base = Path(self.base_dir)
        if not self.pvm_dir:
            self.pvm_dir = str(base / PVM_DIR_NAME)
        pvm = Path(self.pvm_dir)
        if not self.registry_file:
            self.registry_file = str(pvm / "config.yml")
        if not self.cache_file:
            self.cache_file = str(pvm / "cache.json")
        if not self.packages_dir:
            self.packages_dir = str(pvm / "packages")
        if self.cache_ttl < 0:
            raise ConfigError(f"cache_ttl 不能为负数: {self.cache_ttl}")
        if self.operation_timeout < 0:
            raise ConfigError(f"operation_timeout 不能为负数: {self.operation_timeout}")

    @classmethod
    def for_base_dir(cls, base_dir: str | Path, **overrides: Any) -> Config:
        """以 base_dir 为根构造配置；若 .pvm/settings.yml 存在则先加载它"""
        settings = Path(base_dir) / PVM_DIR_NAME / SETTINGS_FILE_NAME
        if settings.exists():
            cfg = cls.from_file(settings, base_dir=str(base_dir), **overrides)
        else:
            cfg = cls(base_dir=str(base_dir), **overrides)
        return cfg

    @classmethod
    def from_file(cls, path: str | Path, **overrides: Any) -> Config:
        """从 YAML 文件加载配置，不存在则返回默认；overrides 优先于文件内容"""
        data = load_yaml(path)
        known = {f for f in cls.__dataclass_fields__}
        matched = {k: v for k, v in data.items() if k in known and k != "extra"}
        extra = {k: v for k, v in data.items() if k not in known}
        matched.update(overrides)
        try:
            cfg = cls(**matched)
        except TypeError as e:
            raise ConfigError(f"配置文件内容无效: {path} ({e})") from e
        cfg.extra = extra
        logger.info("配置已加载: %s", path)
        return cfg

    def ensure_dirs(self) -> None:
        """创建 .pvm 与 packages 目录"""
        Path(self.pvm_dir).mkdir(parents=True, exist_ok=True)
        Path(self.packages_dir).mkdir(parents=True, exist_ok=True)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ResolveOptions:
    """单次操作的变体解析选项

    thread_safety / architecture / compiler_tag 为 None 时表示未指定，
    由消歧策略决定。
    """

    thread_safety: str | None = None
    architecture: str | None = None
    compiler_tag: int | None = None
    force_refresh: bool = False
    show_all: bool = False

    def __post_init__(self) -> None:
        if self.thread_safety is not None:
            self.thread_safety = self.thread_safety.lower()
            if self.thread_safety not in ("nts", "ts"):
                raise InputFormatError(
                    f"无效的线程安全选项 '{self.thread_safety}'，仅支持 nts / ts"
                )
        if self.architecture is not None:
            self.architecture = self.architecture.lower()
            if self.architecture not in ("x64", "x86"):
                raise InputFormatError(
                    f"无效的架构选项 '{self.architecture}'，仅支持 x64 / x86"
                )
