"""CLI — 安装命令"""

from __future__ import annotations

import click

from phpvm.cli import _svc, build_options, echo_result, finish, variant_options


def register(group: click.Group) -> None:
    group.add_command(install)


@click.command()
@click.argument("packages", nargs=-1, required=True)
@variant_options
def install(
    packages: tuple[str, ...],
    thread_safe: bool | None,
    arch: str | None,
    compiler_tag: int | None,
    no_cache: bool,
) -> None:
    """安装 PHP 或扩展

    \b
    示例:
      phpvm install php82
      phpvm install php82-nts-x64-vc16
      phpvm install php82-redis5.3.7
    """
    options = build_options(thread_safe, arch, compiler_tag, no_cache)
    results = []
    for package in packages:
        result = _svc().lifecycle.add(package, options)
        echo_result(result)
        results.append(result)
    finish(results)
