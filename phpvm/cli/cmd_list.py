"""CLI — 查询命令（list / search / clear-cache）"""

from __future__ import annotations

import click

from phpvm.cli import _svc, build_options, variant_options
from phpvm.core.cache import ALL_BUILDS_BUCKET, PECL_INDEX_BUCKET, pecl_bucket
from phpvm.core.exceptions import PvmError


def register(group: click.Group) -> None:
    group.add_command(list_versions)
    group.add_command(search)
    group.add_command(clear_cache)


@click.command(name="list")
@click.option("--all", "show_all", is_flag=True, default=False,
              help="列出每个变体的最新补丁")
@variant_options
def list_versions(
    show_all: bool,
    thread_safe: bool | None,
    arch: str | None,
    compiler_tag: int | None,
    no_cache: bool,
) -> None:
    """列出远端可用版本与本地已安装版本"""
    options = build_options(thread_safe, arch, compiler_tag, no_cache, show_all)
    try:
        rows = _svc().queries.overview(options)
    except PvmError as e:
        click.echo(f"查询失败: {e}", err=True)
        raise SystemExit(1) from e
    if not rows:
        click.echo("没有可用的 PHP 版本。")
        return
    for row in rows:
        latest = ", ".join(row.latest) if row.latest else "-"
        click.echo(f"PHP {row.major_minor:6s} 最新: {latest}")
        for state in row.installed:
            flag = " (可升级)" if state.update_available else ""
            click.echo(f"    已安装 {state.variant_key} {state.patch_version}{flag}")


@click.command()
@click.argument("keyword")
@click.option("--version", "ext_version", default="", help="扩展版本（子串匹配）")
@click.option("--php", "php_version", default="", help="PHP 版本（子串匹配）")
@click.option("--ts/--nts", "thread_safe", default=None, help="线程安全 / 非线程安全")
@click.option("--arch", type=click.Choice(["x64", "x86"], case_sensitive=False),
              default=None, help="CPU 架构")
@click.option("--no-cache", is_flag=True, default=False, help="忽略缓存")
def search(
    keyword: str,
    ext_version: str,
    php_version: str,
    thread_safe: bool | None,
    arch: str | None,
    no_cache: bool,
) -> None:
    """按关键字搜索 PECL 扩展"""
    try:
        hits = _svc().queries.search_extensions(
            keyword,
            ext_version=ext_version,
            php_version=php_version,
            thread_safety=None if thread_safe is None else ("ts" if thread_safe else "nts"),
            architecture=arch,
            force_refresh=no_cache,
        )
    except PvmError as e:
        click.echo(f"搜索失败: {e}", err=True)
        raise SystemExit(1) from e
    if not hits:
        click.echo(f"没有找到与 '{keyword}' 匹配的扩展。")
        return
    for b in hits:
        click.echo(
            f"  {b.extension_name:16s} {b.extension_version:10s} "
            f"php{b.php_major_minor:5s} {b.thread_safety:3s} {b.architecture:3s} "
            f"vc{b.compiler_tag:<3d} {b.artifact_file_name}"
        )


@click.command(name="clear-cache")
@click.option("--extension", default=None, help="只清除某个扩展的缓存")
@click.option("--builds", is_flag=True, default=False, help="只清除基础构建缓存")
def clear_cache(extension: str | None, builds: bool) -> None:
    """清除远端目录缓存"""
    cache = _svc().cache
    if extension:
        removed = cache.invalidate(pecl_bucket(extension))
    elif builds:
        removed = cache.invalidate(ALL_BUILDS_BUCKET)
        removed = cache.invalidate(PECL_INDEX_BUCKET) or removed
    else:
        removed = cache.invalidate()
    click.echo("缓存已清除。" if removed else "没有需要清除的缓存。")
