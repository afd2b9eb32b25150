"""目录查询：版本总览 + PECL 扩展搜索

只读操作，不修改注册表。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from phpvm.core.catalog import BuildCatalog
from phpvm.core.config import ResolveOptions
from phpvm.core.exceptions import InputFormatError
from phpvm.core.models import ExtensionBuildRecord
from phpvm.core.package_registry import PackageRegistry
from phpvm.core.resolver import filter_variants, group_variants, sort_base_builds
from phpvm.core.versions import is_newer_patch, version_key
from phpvm.utils.deadline import Deadline

logger = logging.getLogger(__name__)


@dataclass
class InstalledState:
    variant_key: str
    patch_version: str
    update_available: bool


@dataclass
class OverviewRow:
    """一个 major.minor 的远端最新构建与本地安装情况"""

    major_minor: str
    latest: list[str] = field(default_factory=list)
    installed: list[InstalledState] = field(default_factory=list)


class CatalogQueries:
    """list / search 命令背后的查询"""

    def __init__(
        self,
        catalog: BuildCatalog,
        registry: PackageRegistry,
        *,
        operation_timeout: int = 0,
    ) -> None:
        self.catalog = catalog
        self.registry = registry
        self.operation_timeout = operation_timeout

    def overview(self, options: ResolveOptions | None = None) -> list[OverviewRow]:
        """每个 major.minor 一行

        latest 默认只有最佳构建的标签；show_all 时列出每个变体组的最新补丁。
        远端没有、但本地已安装的 major.minor 也会出现。
        """
        options = options or ResolveOptions()
        deadline = Deadline(self.operation_timeout)
        builds = self.catalog.list_base_builds(options.force_refresh, deadline=deadline)

        rows: dict[str, OverviewRow] = {}
        newest_by_key: dict[str, str] = {}
        for group in group_variants(builds):
            newest_by_key[group.spec.key] = group.newest.full_version

        groups = filter_variants(group_variants(builds), options, spec_of=lambda g: g.spec)
        by_mm: dict[str, list] = {}
        for group in groups:
            by_mm.setdefault(group.spec.major_minor, []).append(group)

        for mm, mm_groups in by_mm.items():
            row = rows.setdefault(mm, OverviewRow(major_minor=mm))
            if options.show_all:
                row.latest = [f"{g.spec.key} {g.newest.full_version}" for g in mm_groups]
            else:
                best = sort_base_builds(g.newest for g in mm_groups)[0]
                row.latest = [
                    f"{best.full_version} ({best.thread_safety}-{best.architecture}-vc{best.compiler_tag})"
                ]

        for pkg in self.registry.list_packages():
            try:
                mm = pkg.major_minor
            except InputFormatError:
                logger.warning("注册表条目无法识别版本，跳过: %s", pkg.variant_key)
                continue
            row = rows.setdefault(mm, OverviewRow(major_minor=mm))
            remote = newest_by_key.get(pkg.variant_key)
            row.installed.append(InstalledState(
                variant_key=pkg.variant_key,
                patch_version=pkg.current_patch_version,
                update_available=remote is not None
                and is_newer_patch(remote, pkg.current_patch_version),
            ))

        return [rows[mm] for mm in sorted(rows, key=version_key)]

    def search_extensions(
        self,
        keyword: str,
        *,
        ext_version: str = "",
        php_version: str = "",
        thread_safety: str | None = None,
        architecture: str | None = None,
        force_refresh: bool = False,
    ) -> list[ExtensionBuildRecord]:
        """按关键字搜索 PECL 扩展构建

        扩展名包含关键字（不区分大小写）；版本条件为子串匹配。
        结果依次按扩展版本、PHP 版本降序，NTS 优先，x64 优先，编译器版本降序。
        """
        needle = keyword.strip().lower()
        if not needle:
            raise InputFormatError("搜索关键字不能为空")
        deadline = Deadline(self.operation_timeout)
        names = [
            n for n in self.catalog.list_extension_names(force_refresh, deadline=deadline)
            if needle in n.lower()
        ]
        logger.info("匹配的扩展: %d 个", len(names))

        ts = thread_safety.lower() if thread_safety else None
        arch = architecture.lower() if architecture else None
        hits: list[ExtensionBuildRecord] = []
        for name in names:
            for build in self.catalog.list_extension_builds(
                name, force_refresh, deadline=deadline,
            ):
                if ext_version and ext_version not in build.extension_version:
                    continue
                if php_version and php_version not in build.php_major_minor:
                    continue
                if ts and build.thread_safety != ts:
                    continue
                if arch and build.architecture != arch:
                    continue
                hits.append(build)

        hits.sort(
            key=lambda b: (
                version_key(b.extension_version),
                version_key(b.php_major_minor),
                b.thread_safety == "nts",
                b.architecture == "x64",
                b.compiler_tag,
            ),
            reverse=True,
        )
        return hits
