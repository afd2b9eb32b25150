"""变体解析器

职责:
- 变体键的生成与反解析（php82-nts-x64-vc16）
- 在多个候选基础构建 / 扩展构建中按确定性规则选出最佳
- 请求未完全指定变体时的消歧：唯一候选自动选中，多个候选交给 SelectionPrompt

基础构建全序（依次比较）:
  1. full_version 数值较大者
  2. NTS 优先于 TS
  3. x64 优先于 x86
  4. compiler_tag 较大者
  5. download_url 字典序较小者（保证不同记录之间没有平局）
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from functools import cmp_to_key
from typing import TypeVar

from phpvm.core.config import ResolveOptions
from phpvm.core.exceptions import (
    AmbiguousSelectionError,
    InputFormatError,
    NotFoundError,
)
from phpvm.core.models import (
    BaseBuildRecord,
    ExtensionBuildRecord,
    InstalledPackage,
    VariantGroup,
    VariantSpec,
)
from phpvm.core.protocols import SelectionPrompt
from phpvm.core.versions import compare_versions, version_key

logger = logging.getLogger(__name__)

VARIANT_KEY_RE = re.compile(r"^php(?P<mm>\d+)-(?P<ts>nts|ts)-(?P<arch>x64|x86)-vc(?P<vc>\d+)$")
BASE_NAME_RE = re.compile(r"^php(?P<major>\d)(?P<minor>\d+)$")

T = TypeVar("T")


# =========================================================================
# 变体键
# =========================================================================

def canonical_variant_key(
    major_minor: str, thread_safety: str, architecture: str, compiler_tag: int,
) -> str:
    """生成变体键: php{MM}-{nts|ts}-{x64|x86}-vc{N}"""
    parts = major_minor.split(".")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise InputFormatError(f"major.minor 格式无效: {major_minor}")
    ts = str(getattr(thread_safety, "value", thread_safety)).lower()
    arch = str(getattr(architecture, "value", architecture)).lower()
    if ts not in ("nts", "ts"):
        raise InputFormatError(f"线程安全属性无效: {thread_safety}")
    if arch not in ("x64", "x86"):
        raise InputFormatError(f"架构无效: {architecture}")
    return f"php{parts[0]}{parts[1]}-{ts}-{arch}-vc{int(compiler_tag)}"


def parse_variant_key(key: str) -> VariantSpec:
    """反解析变体键；MM 的第一位为主版本号，其余为次版本号"""
    m = VARIANT_KEY_RE.match(key)
    if m is None:
        raise InputFormatError(
            f"无法识别的变体键 '{key}'，应形如 php82-nts-x64-vc16"
        )
    mm = m.group("mm")
    if len(mm) < 2:
        raise InputFormatError(f"变体键缺少次版本号: {key}")
    return VariantSpec(
        major_minor=f"{mm[0]}.{mm[1:]}",
        thread_safety=m.group("ts"),
        architecture=m.group("arch"),
        compiler_tag=int(m.group("vc")),
    )


def parse_base_name(name: str) -> str:
    """'php82' -> '8.2'"""
    m = BASE_NAME_RE.match(name)
    if m is None:
        raise InputFormatError(
            f"无效的基础包名 '{name}'，应形如 php82 / php81"
        )
    return f"{m.group('major')}.{m.group('minor')}"


def is_variant_key(text: str) -> bool:
    return VARIANT_KEY_RE.match(text) is not None


# =========================================================================
# 最佳构建选择
# =========================================================================

def _base_order(a: BaseBuildRecord, b: BaseBuildRecord) -> int:
    """a 优于 b 返回负数"""
    cmp = compare_versions(b.full_version, a.full_version)
    if cmp:
        return cmp
    if a.is_nts != b.is_nts:
        return -1 if a.is_nts else 1
    if a.is_x64 != b.is_x64:
        return -1 if a.is_x64 else 1
    if a.compiler_tag != b.compiler_tag:
        return b.compiler_tag - a.compiler_tag
    return (a.download_url > b.download_url) - (a.download_url < b.download_url)


def sort_base_builds(candidates: Iterable[BaseBuildRecord]) -> list[BaseBuildRecord]:
    """按优先级从高到低排序"""
    return sorted(candidates, key=cmp_to_key(_base_order))


def select_best_base_build(candidates: Iterable[BaseBuildRecord]) -> BaseBuildRecord:
    ordered = sort_base_builds(candidates)
    if not ordered:
        raise NotFoundError("没有可选的基础构建")
    return ordered[0]


@dataclass(frozen=True)
class ExtensionConstraints:
    """扩展构建的筛选约束

    compiler_tag 为 None 时不约束编译器版本。
    """

    php_major_minor: str
    thread_safety: str
    architecture: str
    version_prefix: str = ""
    compiler_tag: int | None = None

    def matches(self, build: ExtensionBuildRecord) -> bool:
        if build.php_major_minor != self.php_major_minor:
            return False
        if build.thread_safety != self.thread_safety:
            return False
        if build.architecture != self.architecture:
            return False
        if self.compiler_tag is not None and build.compiler_tag != self.compiler_tag:
            return False
        return build.extension_version.startswith(self.version_prefix)


def select_best_extension_build(
    candidates: Iterable[ExtensionBuildRecord], constraints: ExtensionConstraints,
) -> ExtensionBuildRecord:
    """按约束过滤后取 extension_version 数值最大者

    版本号为前缀匹配（"5.3" 匹配 "5.3.0" / "5.3.10"），不是语义化范围。
    """
    survivors = [b for b in candidates if constraints.matches(b)]
    if not survivors:
        raise NotFoundError(
            f"没有匹配的扩展构建: php={constraints.php_major_minor}, "
            f"{constraints.thread_safety}, {constraints.architecture}, "
            f"version={constraints.version_prefix or '*'}"
        )
    # 版本相同时以编译器版本、文件名保证确定性
    return max(
        survivors,
        key=lambda b: (
            version_key(b.extension_version), b.compiler_tag,
            b.is_archive, b.artifact_file_name,
        ),
    )


# =========================================================================
# 变体分组与消歧
# =========================================================================

def group_variants(builds: Iterable[BaseBuildRecord]) -> list[VariantGroup]:
    """按变体分组，组内按补丁版本从新到旧；组按变体键排序"""
    grouped: dict[VariantSpec, list[BaseBuildRecord]] = {}
    for b in builds:
        grouped.setdefault(VariantSpec.of(b), []).append(b)
    groups = [VariantGroup(spec=s, builds=sort_base_builds(lst)) for s, lst in grouped.items()]
    return sorted(groups, key=lambda g: g.spec.key)


def filter_variants(
    specs: Iterable[T], options: ResolveOptions, *, spec_of=lambda x: x,  # noqa: ANN001
) -> list[T]:
    """按选项中显式给出的线程安全 / 架构 / 编译器版本过滤"""
    out: list[T] = []
    for item in specs:
        spec: VariantSpec = spec_of(item)
        if options.thread_safety is not None and spec.thread_safety != options.thread_safety:
            continue
        if options.architecture is not None and spec.architecture != options.architecture:
            continue
        if options.compiler_tag is not None and spec.compiler_tag != options.compiler_tag:
            continue
        out.append(item)
    return out


def default_variant_index(specs: list[VariantSpec]) -> int:
    """默认选择：NTS + x64 中编译器版本最高者；不存在时取第一个"""
    best_idx = -1
    best_vc = -1
    for idx, spec in enumerate(specs):
        if spec.thread_safety == "nts" and spec.architecture == "x64" and spec.compiler_tag > best_vc:
            best_vc = spec.compiler_tag
            best_idx = idx
    return best_idx if best_idx >= 0 else 0


class VariantResolver:
    """变体消歧 — 唯一候选自动选中，多个候选交给 SelectionPrompt"""

    def __init__(self, prompt: SelectionPrompt) -> None:
        self.prompt = prompt

    def _pick(self, question: str, labels: list[str], default_index: int) -> int:
        idx = self.prompt.choose(question, labels, default_index)
        if not 0 <= idx < len(labels):
            raise AmbiguousSelectionError(f"无效的选择下标: {idx}", candidates=labels)
        return idx

    def choose_remote_variant(
        self,
        major_minor: str,
        builds: Iterable[BaseBuildRecord],
        options: ResolveOptions,
    ) -> VariantGroup:
        """在远端构建中为 major.minor 确定一个变体组"""
        matching = [b for b in builds if b.major_minor == major_minor]
        if not matching:
            raise NotFoundError(f"远端没有 PHP {major_minor} 的构建")
        groups = filter_variants(group_variants(matching), options, spec_of=lambda g: g.spec)
        if not groups:
            raise NotFoundError(
                f"没有符合条件的 PHP {major_minor} 构建: "
                f"ts={options.thread_safety or 'any'}, "
                f"arch={options.architecture or 'any'}, "
                f"vc={options.compiler_tag if options.compiler_tag is not None else 'any'}"
            )
        if len(groups) == 1:
            logger.info("唯一变体: %s", groups[0].label())
            return groups[0]

        default = default_variant_index([g.spec for g in groups])
        labels = [f"{g.spec.key}: {g.label()}" for g in groups]
        idx = self._pick(f"PHP {major_minor} 存在多个变体，请选择:", labels, default)
        return groups[idx]

    def choose_installed_variant(
        self,
        major_minor: str,
        packages: list[InstalledPackage],
        options: ResolveOptions,
        *,
        purpose: str = "",
    ) -> InstalledPackage:
        """在已安装的变体中为 major.minor 确定一个"""
        specs = [
            (p, parse_variant_key(p.variant_key))
            for p in packages if is_variant_key(p.variant_key)
        ]
        candidates = [
            pair for pair in specs if pair[1].major_minor == major_minor
        ]
        candidates = filter_variants(candidates, options, spec_of=lambda pair: pair[1])
        if not candidates:
            raise NotFoundError(f"没有已安装的 PHP {major_minor} 变体")
        if len(candidates) == 1:
            return candidates[0][0]

        candidates.sort(key=lambda pair: pair[0].variant_key)
        default = default_variant_index([s for _, s in candidates])
        labels = [
            f"{p.variant_key} (patch={p.current_patch_version})" for p, _ in candidates
        ]
        suffix = f"（{purpose}）" if purpose else ""
        idx = self._pick(f"PHP {major_minor} 已安装多个变体{suffix}，请选择:", labels, default)
        return candidates[idx][0]
