"""CLI — 升级命令"""

from __future__ import annotations

import click

from phpvm.cli import _svc, build_options, echo_result, finish, variant_options


def register(group: click.Group) -> None:
    group.add_command(upgrade)


@click.command()
@click.argument("package", required=False)
@click.option("--all", "all_variants", is_flag=True, default=False,
              help="升级全部已安装变体")
@variant_options
def upgrade(
    package: str | None,
    all_variants: bool,
    thread_safe: bool | None,
    arch: str | None,
    compiler_tag: int | None,
    no_cache: bool,
) -> None:
    """把已安装的 PHP 升级到同一变体的最新补丁（php.ini 保持不变）"""
    if not package and not all_variants:
        raise click.UsageError("请指定要升级的包，或使用 --all")
    options = build_options(thread_safe, arch, compiler_tag, no_cache)
    results = _svc().lifecycle.upgrade(package, options, all_variants=all_variants)
    for result in results:
        echo_result(result)
    finish(results)
