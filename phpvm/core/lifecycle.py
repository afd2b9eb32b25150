"""生命周期管理器

把 BuildCatalog、VariantResolver、PackageRegistry 与下载 / 解压组合成
面向用户的操作:

  install            全新安装；已安装则在确认后原地升级；已最新则什么都不做
  upgrade            按变体或 --all 升级已安装包（不询问）
  attach_extension   为已安装变体下载并启用 PECL 扩展
  detach_extension   删除扩展二进制并移除 php.ini 中的启用指令
  uninstall          删除安装目录并从注册表移除

每个操作返回 OperationResult；业务异常在操作边界转换为结果状态。
注册表只在全部副作用完成后保存一次，失败的操作不会写注册表。
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Callable

from phpvm.core.catalog import BuildCatalog
from phpvm.core.config import Config, ResolveOptions
from phpvm.core.exceptions import (
    ArchiveError,
    FilesystemError,
    InputFormatError,
    NotFoundError,
    PvmError,
    TransportError,
)
from phpvm.core.identifiers import parse_extension_identifier, parse_package_argument
from phpvm.core.models import (
    BaseBuildRecord,
    InstalledExtension,
    InstalledPackage,
    OperationResult,
    OperationStatus,
    VariantSpec,
)
from phpvm.core.package_registry import PackageRegistry
from phpvm.core.protocols import SelectionPrompt, Transport
from phpvm.core.resolver import (
    ExtensionConstraints,
    VariantResolver,
    group_variants,
    is_variant_key,
    parse_base_name,
    parse_variant_key,
    select_best_base_build,
    select_best_extension_build,
)
from phpvm.core.versions import is_newer_patch
from phpvm.utils.archive import extract_all, extract_first_match, overwrite_except
from phpvm.utils.deadline import Deadline
from phpvm.utils.fs import (
    append_ini_line,
    remove_file_best_effort,
    remove_first_ini_line,
    remove_tree_best_effort,
)

logger = logging.getLogger(__name__)


def _now_text() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


class LifecycleManager:
    """安装 / 升级 / 扩展 / 卸载"""

    def __init__(
        self,
        config: Config,
        catalog: BuildCatalog,
        registry: PackageRegistry,
        transport: Transport,
        prompt: SelectionPrompt,
        resolver: VariantResolver | None = None,
        *,
        now: Callable[[], str] = _now_text,
    ) -> None:
        self.config = config
        self.catalog = catalog
        self.registry = registry
        self.transport = transport
        self.prompt = prompt
        self.resolver = resolver or VariantResolver(prompt)
        self._now = now

    def _deadline(self) -> Deadline:
        return Deadline(self.config.operation_timeout)

    # ------------------------------------------------------------------
    # 包参数分发（CLI 入口）
    # ------------------------------------------------------------------

    def add(self, argument: str, options: ResolveOptions | None = None) -> OperationResult:
        """php82 / 变体键 → install；php82-redis5.3.7 → attach_extension"""
        options = options or ResolveOptions()
        try:
            parsed = parse_package_argument(argument)
        except PvmError as e:
            return OperationResult.from_error(e)
        if parsed.is_extension:
            return self.attach_extension(parsed.target, parsed.extension, options)
        return self.install(parsed.target, options)

    def remove(
        self,
        argument: str,
        options: ResolveOptions | None = None,
        *,
        assume_yes: bool = False,
    ) -> OperationResult:
        """php82 / 变体键 → uninstall；php82-redis5.3.7 → detach_extension"""
        options = options or ResolveOptions()
        try:
            parsed = parse_package_argument(argument)
        except PvmError as e:
            return OperationResult.from_error(e)
        if parsed.is_extension:
            return self.detach_extension(
                parsed.target, parsed.extension, options, assume_yes=assume_yes,
            )
        return self.uninstall(parsed.target, options, assume_yes=assume_yes)

    # ------------------------------------------------------------------
    # 目标解析
    # ------------------------------------------------------------------

    def _remote_group(
        self, query: str, options: ResolveOptions, deadline: Deadline,
    ) -> tuple[VariantSpec, list[BaseBuildRecord]]:
        builds = self.catalog.list_base_builds(options.force_refresh, deadline=deadline)
        if is_variant_key(query):
            spec = parse_variant_key(query)
            for group in group_variants(b for b in builds if b.major_minor == spec.major_minor):
                if group.spec == spec:
                    return group.spec, group.builds
            raise NotFoundError(f"远端没有变体 '{query}' 的构建")
        group = self.resolver.choose_remote_variant(parse_base_name(query), builds, options)
        return group.spec, group.builds

    def _installed_target(
        self, query: str, options: ResolveOptions, *, purpose: str = "",
    ) -> InstalledPackage:
        if is_variant_key(query):
            return self.registry.require_package(query)
        major_minor = parse_base_name(query)
        return self.resolver.choose_installed_variant(
            major_minor, self.registry.find_variants(major_minor), options, purpose=purpose,
        )

    # ------------------------------------------------------------------
    # 下载与解压
    # ------------------------------------------------------------------

    def _work_dir(self) -> Path:
        tmp_root = Path(self.config.pvm_dir) / "tmp"
        try:
            tmp_root.mkdir(parents=True, exist_ok=True)
            return Path(tempfile.mkdtemp(prefix="dl-", dir=tmp_root))
        except OSError as e:
            raise FilesystemError(f"创建临时目录失败: {tmp_root} ({e})") from e

    def _fetch_base_archive(self, build: BaseBuildRecord, work: Path, deadline: Deadline) -> Path:
        """先 HEAD 确认存在，再 GET 下载并校验最小体积"""
        status = self.transport.head(build.download_url, deadline=deadline)
        if status != 200:
            raise TransportError(
                f"远端文件不可用 (HTTP {status}): {build.download_url}",
                url=build.download_url, status_code=status,
            )
        dest = work / Path(build.download_url.rsplit("/", 1)[-1] or "php.zip").name
        self.transport.download(build.download_url, dest, deadline=deadline)
        size = dest.stat().st_size
        if size < self.config.min_archive_bytes:
            raise ArchiveError(
                f"下载文件过小或无效: {dest.name} ({size} 字节)"
            )
        return dest

    def _fresh_install(self, key: str, build: BaseBuildRecord, deadline: Deadline) -> Path:
        install_path = Path(self.config.packages_dir) / key
        work = self._work_dir()
        try:
            archive = self._fetch_base_archive(build, work, deadline)
            extract_all(archive, install_path, deadline=deadline)
        finally:
            shutil.rmtree(work, ignore_errors=True)

        template = install_path / self.config.ini_template
        ini = install_path / self.config.ini_file
        if template.exists() and not ini.exists():
            try:
                template.rename(ini)
            except OSError as e:
                raise FilesystemError(f"生成 {ini.name} 失败: {e}") from e
            logger.info("已生成 %s", ini)
        elif not ini.exists():
            logger.warning("压缩包中没有 %s，跳过生成 %s", template.name, ini.name)
        return install_path

    def _upgrade_in_place(self, pkg: InstalledPackage, build: BaseBuildRecord, deadline: Deadline) -> None:
        install_path = Path(pkg.install_path)
        if not install_path.is_dir():
            raise FilesystemError(f"安装目录不存在: {install_path}")
        work = self._work_dir()
        try:
            archive = self._fetch_base_archive(build, work, deadline)
            overwrite_except(
                archive, install_path,
                protected=(self.config.ini_file,), deadline=deadline,
            )
        finally:
            shutil.rmtree(work, ignore_errors=True)

    # ------------------------------------------------------------------
    # install
    # ------------------------------------------------------------------

    def install(self, query: str, options: ResolveOptions | None = None) -> OperationResult:
        """安装基础包

        query 为 php82（交给消歧）或完整变体键。
        已安装且远端有更新补丁时询问是否原地升级（php.ini 保持不变）。
        """
        options = options or ResolveOptions()
        deadline = self._deadline()
        key = ""
        try:
            spec, builds = self._remote_group(query, options, deadline)
            key = spec.key
            best = select_best_base_build(builds)
            existing = self.registry.get_package(key)

            if existing is not None:
                if not is_newer_patch(best.full_version, existing.current_patch_version):
                    logger.info("%s 已是最新 (%s)", key, existing.current_patch_version)
                    return OperationResult(
                        OperationStatus.ALREADY_SATISFIED,
                        f"{key} 已是最新版本 {existing.current_patch_version}",
                        variant_key=key, version=existing.current_patch_version,
                    )
                question = (
                    f"{key} 已安装 {existing.current_patch_version}，"
                    f"是否升级到 {best.full_version}?"
                )
                if not self.prompt.confirm(question, False):
                    logger.info("用户取消升级: %s", key)
                    return OperationResult(
                        OperationStatus.SUCCESS, "已取消升级，未做任何修改",
                        variant_key=key, version=existing.current_patch_version,
                    )
                self._upgrade_in_place(existing, best, deadline)
                self.registry.upsert_package(key, {"current_patch_version": best.full_version})
                self.registry.save()
                logger.info("升级完成: %s %s -> %s", key, existing.current_patch_version, best.full_version)
                return OperationResult(
                    OperationStatus.SUCCESS,
                    f"{key} 已从 {existing.current_patch_version} 升级到 {best.full_version}",
                    variant_key=key, version=best.full_version,
                )

            install_path = self._fresh_install(key, best, deadline)
            self.registry.upsert_package(key, InstalledPackage(
                variant_key=key,
                current_patch_version=best.full_version,
                install_path=str(install_path),
                thread_safety=spec.thread_safety,
                architecture=spec.architecture,
                compiler_tag=spec.compiler_tag,
            ))
            self.registry.save()
            logger.info("安装完成: %s %s -> %s", key, best.full_version, install_path)
            return OperationResult(
                OperationStatus.SUCCESS,
                f"{key} {best.full_version} 已安装到 {install_path}",
                variant_key=key, version=best.full_version,
            )
        except PvmError as e:
            logger.error("安装失败 [%s]: %s", e.code, e,
                         extra={"variant_key": key, "error_code": e.code})
            return OperationResult.from_error(e, variant_key=key)

    # ------------------------------------------------------------------
    # upgrade
    # ------------------------------------------------------------------

    def _upgrade_targets(
        self, query: str | None, options: ResolveOptions, all_variants: bool,
    ) -> list[InstalledPackage]:
        if all_variants:
            return [p for p in self.registry.list_packages() if is_variant_key(p.variant_key)]
        if not query:
            raise InputFormatError("请指定要升级的包，或使用 --all")
        return [self._installed_target(query, options, purpose="升级")]

    def upgrade(
        self,
        query: str | None = None,
        options: ResolveOptions | None = None,
        *,
        all_variants: bool = False,
    ) -> list[OperationResult]:
        """升级已安装变体到远端最新补丁，每个目标一个结果

        单个目标失败不影响其他目标；全部处理完后保存一次注册表。
        """
        options = options or ResolveOptions()
        deadline = self._deadline()
        try:
            targets = self._upgrade_targets(query, options, all_variants)
            if not targets:
                return [OperationResult(OperationStatus.SUCCESS, "没有已安装的 PHP 变体")]
            builds = self.catalog.list_base_builds(options.force_refresh, deadline=deadline)
        except PvmError as e:
            logger.error("升级失败 [%s]: %s", e.code, e, extra={"error_code": e.code})
            return [OperationResult.from_error(e)]

        results: list[OperationResult] = []
        changed = False
        for pkg in targets:
            spec = parse_variant_key(pkg.variant_key)
            try:
                candidates = [b for b in builds if VariantSpec.of(b) == spec]
                if not candidates:
                    raise NotFoundError(f"远端没有变体 '{pkg.variant_key}' 的构建")
                best = select_best_base_build(candidates)
                if not is_newer_patch(best.full_version, pkg.current_patch_version):
                    results.append(OperationResult(
                        OperationStatus.ALREADY_SATISFIED,
                        f"{pkg.variant_key} 已是最新版本 {pkg.current_patch_version}",
                        variant_key=pkg.variant_key, version=pkg.current_patch_version,
                    ))
                    continue
                self._upgrade_in_place(pkg, best, deadline)
            except PvmError as e:
                logger.error("升级 %s 失败 [%s]: %s", pkg.variant_key, e.code, e,
                             extra={"variant_key": pkg.variant_key, "error_code": e.code})
                results.append(OperationResult.from_error(e, variant_key=pkg.variant_key))
                continue
            self.registry.upsert_package(
                pkg.variant_key, {"current_patch_version": best.full_version},
            )
            changed = True
            logger.info("升级完成: %s %s -> %s", pkg.variant_key,
                        pkg.current_patch_version, best.full_version)
            results.append(OperationResult(
                OperationStatus.SUCCESS,
                f"{pkg.variant_key} 已从 {pkg.current_patch_version} 升级到 {best.full_version}",
                variant_key=pkg.variant_key, version=best.full_version,
            ))

        if changed:
            self.registry.save()
        return results

    # ------------------------------------------------------------------
    # 扩展
    # ------------------------------------------------------------------

    def attach_extension(
        self, query: str, identifier: str, options: ResolveOptions | None = None,
    ) -> OperationResult:
        """为已安装变体挂载扩展

        重复挂载同一标识不做去重：二进制被覆盖，php.ini 中会多出一行指令。
        """
        options = options or ResolveOptions()
        deadline = self._deadline()
        key = ""
        try:
            ext = parse_extension_identifier(identifier)
            pkg = self._installed_target(query, options, purpose="挂载扩展")
            key = pkg.variant_key
            install_path = Path(pkg.install_path)
            if not install_path.is_dir():
                raise FilesystemError(f"安装目录不存在: {install_path}")

            builds = self.catalog.list_extension_builds(
                ext.name, options.force_refresh, deadline=deadline,
            )
            constraints = ExtensionConstraints(
                php_major_minor=pkg.major_minor,
                thread_safety=pkg.thread_safety,
                architecture=pkg.architecture,
                version_prefix=ext.version_prefix,
                compiler_tag=pkg.compiler_tag if self.config.match_compiler_tag else None,
            )
            chosen = select_best_extension_build(builds, constraints)
            logger.info("选中扩展构建: %s", chosen.artifact_file_name)

            ext_dir = install_path / self.config.ext_dir
            try:
                ext_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise FilesystemError(f"创建扩展目录失败: {ext_dir} ({e})") from e

            work = self._work_dir()
            try:
                downloaded = self.transport.download(
                    chosen.download_url, work / chosen.artifact_file_name, deadline=deadline,
                )
                if chosen.is_archive:
                    binary_name = extract_first_match(
                        downloaded, ext_dir, suffix=self.config.binary_suffix, deadline=deadline,
                    )
                else:
                    binary_name = chosen.artifact_file_name
                    try:
                        shutil.move(str(downloaded), str(ext_dir / binary_name))
                    except OSError as e:
                        raise FilesystemError(f"写入扩展文件失败: {binary_name} ({e})") from e
            finally:
                shutil.rmtree(work, ignore_errors=True)

            directive = f'extension="{binary_name}"'
            ini = install_path / self.config.ini_file
            if ini.exists():
                append_ini_line(ini, directive)
            else:
                logger.warning("%s 不存在，未写入启用指令: %s", ini, directive)

            ext_key = f"{key}-{ext.raw}"
            self.registry.add_extension(key, ext_key, InstalledExtension(
                ext_key=ext_key,
                pecl_name=ext.name,
                requested_version=ext.version_prefix,
                installed_version=chosen.extension_version,
                artifact_file_name=binary_name,
                enable_directive_text=directive,
                installed_at=self._now(),
            ))
            self.registry.save()
            logger.info("扩展已挂载: %s (%s)", ext_key, chosen.extension_version)
            return OperationResult(
                OperationStatus.SUCCESS,
                f"扩展 {ext.name} {chosen.extension_version} 已挂载到 {key}",
                variant_key=key, version=chosen.extension_version,
            )
        except PvmError as e:
            logger.error("挂载扩展失败 [%s]: %s", e.code, e,
                         extra={"variant_key": key, "error_code": e.code})
            return OperationResult.from_error(e, variant_key=key)

    def detach_extension(
        self,
        query: str,
        identifier: str,
        options: ResolveOptions | None = None,
        *,
        assume_yes: bool = False,
    ) -> OperationResult:
        """卸载扩展：删除二进制、移除第一条启用指令、注册表删除条目"""
        options = options or ResolveOptions()
        key = ""
        try:
            parse_extension_identifier(identifier)
            pkg = self._installed_target(query, options, purpose="卸载扩展")
            key = pkg.variant_key
            ext_key = f"{key}-{identifier.strip()}"
            ext = pkg.extensions.get(ext_key)
            if ext is None:
                raise NotFoundError(f"扩展 '{ext_key}' 未安装")
            if not assume_yes and not self.prompt.confirm(
                f"确定卸载扩展 {ext_key} ({ext.installed_version})?", False,
            ):
                logger.info("用户取消卸载扩展: %s", ext_key)
                return OperationResult(
                    OperationStatus.SUCCESS, "已取消卸载扩展，未做任何修改",
                    variant_key=key, version=ext.installed_version,
                )

            details: list[str] = []
            install_path = Path(pkg.install_path)
            if install_path.is_dir():
                binary = install_path / self.config.ext_dir / ext.artifact_file_name
                if not remove_file_best_effort(binary):
                    details.append(f"未删除扩展文件: {binary}")
                ini = install_path / self.config.ini_file
                if not ini.exists():
                    logger.warning("%s 不存在，跳过移除启用指令", ini)
                elif not remove_first_ini_line(ini, ext.enable_directive_text):
                    logger.warning("%s 中没有找到指令: %s", ini, ext.enable_directive_text)
                    details.append(f"未找到启用指令: {ext.enable_directive_text}")
            else:
                logger.warning("安装目录不存在: %s", install_path)
                details.append(f"安装目录不存在: {install_path}")

            self.registry.remove_extension(key, ext_key)
            self.registry.save()
            logger.info("扩展已卸载: %s", ext_key)
            return OperationResult(
                OperationStatus.SUCCESS, f"扩展 {ext_key} 已卸载",
                variant_key=key, version=ext.installed_version, details=details,
            )
        except PvmError as e:
            logger.error("卸载扩展失败 [%s]: %s", e.code, e,
                         extra={"variant_key": key, "error_code": e.code})
            return OperationResult.from_error(e, variant_key=key)

    # ------------------------------------------------------------------
    # uninstall
    # ------------------------------------------------------------------

    def uninstall(
        self,
        query: str,
        options: ResolveOptions | None = None,
        *,
        assume_yes: bool = False,
    ) -> OperationResult:
        """删除安装目录（尽力而为）并从注册表移除变体"""
        options = options or ResolveOptions()
        key = ""
        try:
            pkg = self._installed_target(query, options, purpose="卸载")
            key = pkg.variant_key
            if not assume_yes and not self.prompt.confirm(
                f"确定卸载 {key} ({pkg.current_patch_version})?", False,
            ):
                logger.info("用户取消卸载: %s", key)
                return OperationResult(
                    OperationStatus.SUCCESS, "已取消卸载，未做任何修改",
                    variant_key=key, version=pkg.current_patch_version,
                )

            install_path = Path(pkg.install_path)
            failures: list[str] = []
            if install_path.is_dir():
                failures = remove_tree_best_effort(install_path)
            else:
                logger.warning("安装目录不存在，仅清理注册表: %s", install_path)

            self.registry.remove_package(key)
            self.registry.save()
            logger.info("卸载完成: %s", key)
            return OperationResult(
                OperationStatus.SUCCESS, f"{key} 已卸载",
                variant_key=key, version=pkg.current_patch_version,
                details=[f"未能删除: {p}" for p in failures],
            )
        except PvmError as e:
            logger.error("卸载失败 [%s]: %s", e.code, e,
                         extra={"variant_key": key, "error_code": e.code})
            return OperationResult.from_error(e, variant_key=key)
