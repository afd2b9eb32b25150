"""核心数据模型

远端构建记录（不可变值）、已安装包 / 扩展（注册表文档的结构化视图）
以及操作结果，其他模块统一从此处导入。
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

# =========================================================================
# 变体属性
# =========================================================================


class ThreadSafety(str, Enum):
    """线程安全属性"""
    NTS = "nts"
    TS = "ts"


class Architecture(str, Enum):
    """CPU 架构"""
    X64 = "x64"
    X86 = "x86"


def _ts(value: str | ThreadSafety) -> str:
    return ThreadSafety(str(getattr(value, "value", value)).lower()).value


def _arch(value: str | Architecture) -> str:
    return Architecture(str(getattr(value, "value", value)).lower()).value


# =========================================================================
# 远端构建记录
# =========================================================================


@dataclass(frozen=True)
class BaseBuildRecord:
    """windows.php.net 上的一个 PHP 运行时构建"""

    full_version: str      # 如 "8.2.10"
    major_minor: str       # 如 "8.2"
    thread_safety: str     # "nts" / "ts"
    architecture: str      # "x64" / "x86"
    compiler_tag: int      # vs16 -> 16
    download_url: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "thread_safety", _ts(self.thread_safety))
        object.__setattr__(self, "architecture", _arch(self.architecture))
        object.__setattr__(self, "compiler_tag", int(self.compiler_tag))

    @property
    def is_nts(self) -> bool:
        return self.thread_safety == ThreadSafety.NTS.value

    @property
    def is_x64(self) -> bool:
        return self.architecture == Architecture.X64.value

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BaseBuildRecord:
        return cls(
            full_version=data["full_version"],
            major_minor=data["major_minor"],
            thread_safety=data["thread_safety"],
            architecture=data["architecture"],
            compiler_tag=data["compiler_tag"],
            download_url=data["download_url"],
        )


@dataclass(frozen=True)
class ExtensionBuildRecord:
    """PECL 仓库中的一个扩展构建"""

    extension_name: str      # 如 "redis"
    extension_version: str   # 如 "5.3.7"
    php_major_minor: str     # 如 "8.2"
    thread_safety: str
    architecture: str
    compiler_tag: int
    artifact_file_name: str  # 如 php_redis-5.3.7-8.2-nts-vs16-x64.zip
    download_url: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "thread_safety", _ts(self.thread_safety))
        object.__setattr__(self, "architecture", _arch(self.architecture))
        object.__setattr__(self, "compiler_tag", int(self.compiler_tag))

    @property
    def is_archive(self) -> bool:
        return self.artifact_file_name.lower().endswith(".zip")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExtensionBuildRecord:
        return cls(
            extension_name=data["extension_name"],
            extension_version=data["extension_version"],
            php_major_minor=data["php_major_minor"],
            thread_safety=data["thread_safety"],
            architecture=data["architecture"],
            compiler_tag=data["compiler_tag"],
            artifact_file_name=data["artifact_file_name"],
            download_url=data["download_url"],
        )


# =========================================================================
# 变体标识
# =========================================================================


@dataclass(frozen=True)
class VariantSpec:
    """变体四元组：major.minor × 线程安全 × 架构 × 编译器版本"""

    major_minor: str
    thread_safety: str
    architecture: str
    compiler_tag: int

    @property
    def key(self) -> str:
        from phpvm.core.resolver import canonical_variant_key
        return canonical_variant_key(
            self.major_minor, self.thread_safety,
            self.architecture, self.compiler_tag,
        )

    @classmethod
    def of(cls, build: BaseBuildRecord) -> VariantSpec:
        return cls(
            major_minor=build.major_minor,
            thread_safety=build.thread_safety,
            architecture=build.architecture,
            compiler_tag=build.compiler_tag,
        )


@dataclass
class VariantGroup:
    """同一变体下的全部远端构建，builds 按补丁版本从新到旧排列"""

    spec: VariantSpec
    builds: list[BaseBuildRecord] = field(default_factory=list)

    @property
    def newest(self) -> BaseBuildRecord:
        return self.builds[0]

    def label(self) -> str:
        s = self.spec
        return (
            f"{s.thread_safety.upper()} / {s.architecture} / VC={s.compiler_tag}"
            f" (patch={self.newest.full_version})"
        )


# =========================================================================
# 已安装实体（注册表文档视图）
# =========================================================================


@dataclass
class InstalledExtension:
    """挂载在某个基础包上的扩展"""

    ext_key: str
    pecl_name: str
    requested_version: str
    installed_version: str
    artifact_file_name: str
    enable_directive_text: str
    installed_at: str

    def to_entry(self) -> dict[str, str]:
        return {
            "pecl_name": self.pecl_name,
            "requested_version": self.requested_version,
            "installed_version": self.installed_version,
            "artifact_file_name": self.artifact_file_name,
            "enable_directive_text": self.enable_directive_text,
            "installed_at": self.installed_at,
        }

    @classmethod
    def from_entry(cls, ext_key: str, entry: dict[str, Any]) -> InstalledExtension:
        return cls(
            ext_key=ext_key,
            pecl_name=entry.get("pecl_name", ""),
            requested_version=str(entry.get("requested_version", "")),
            installed_version=str(entry.get("installed_version", "")),
            artifact_file_name=entry.get("artifact_file_name", ""),
            enable_directive_text=entry.get("enable_directive_text", ""),
            installed_at=str(entry.get("installed_at", "")),
        )


@dataclass
class InstalledPackage:
    """已安装的基础包（一个变体实例）"""

    variant_key: str
    current_patch_version: str
    install_path: str
    thread_safety: str
    architecture: str
    compiler_tag: int
    extensions: dict[str, InstalledExtension] = field(default_factory=dict)

    @property
    def major_minor(self) -> str:
        parts = self.current_patch_version.split(".")
        if len(parts) >= 2 and parts[0].isdigit() and parts[1].isdigit():
            return f"{parts[0]}.{parts[1]}"
        from phpvm.core.resolver import parse_variant_key
        return parse_variant_key(self.variant_key).major_minor

    def to_entry(self) -> dict[str, Any]:
        return {
            "current_patch_version": self.current_patch_version,
            "install_path": self.install_path,
            "thread_safety": self.thread_safety,
            "architecture": self.architecture,
            "compiler_tag": self.compiler_tag,
            "extensions": {k: e.to_entry() for k, e in self.extensions.items()},
        }

    @classmethod
    def from_entry(cls, variant_key: str, entry: dict[str, Any]) -> InstalledPackage:
        raw_exts = entry.get("extensions") or {}
        return cls(
            variant_key=variant_key,
            current_patch_version=str(entry.get("current_patch_version", "")),
            install_path=entry.get("install_path", ""),
            thread_safety=entry.get("thread_safety", ""),
            architecture=entry.get("architecture", ""),
            compiler_tag=int(entry.get("compiler_tag", 0) or 0),
            extensions={
                k: InstalledExtension.from_entry(k, v)
                for k, v in raw_exts.items() if v is not None
            },
        )


# =========================================================================
# 操作结果
# =========================================================================


class OperationStatus(str, Enum):
    """对调用方暴露的操作结果状态"""
    SUCCESS = "success"
    REJECTED_INPUT = "rejected-input"
    NOT_FOUND = "not-found"
    ALREADY_SATISFIED = "already-satisfied"
    AMBIGUOUS = "ambiguous"
    OPERATION_FAILED = "operation-failed"


@dataclass
class OperationResult:
    """生命周期操作结果"""

    status: OperationStatus
    message: str = ""
    variant_key: str = ""
    version: str = ""
    details: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status in (
            OperationStatus.SUCCESS, OperationStatus.ALREADY_SATISFIED,
        )

    @classmethod
    def from_error(cls, exc: Exception, *, variant_key: str = "") -> OperationResult:
        """把 PvmError 转换为结果对象，未知异常一律视为 operation-failed"""
        status = getattr(exc, "status", OperationStatus.OPERATION_FAILED.value)
        return cls(
            status=OperationStatus(status),
            message=str(exc),
            variant_key=variant_key,
        )
