"""CLI — 卸载命令"""

from __future__ import annotations

import click

from phpvm.cli import _svc, build_options, echo_result, finish, variant_options


def register(group: click.Group) -> None:
    group.add_command(uninstall)


@click.command()
@click.argument("packages", nargs=-1, required=True)
@click.option("--force", "-f", is_flag=True, default=False, help="不询问直接卸载")
@variant_options
def uninstall(
    packages: tuple[str, ...],
    force: bool,
    thread_safe: bool | None,
    arch: str | None,
    compiler_tag: int | None,
    no_cache: bool,
) -> None:
    """卸载 PHP 或扩展

    \b
    示例:
      phpvm uninstall php82
      phpvm uninstall php82-redis5.3.7
    """
    options = build_options(thread_safe, arch, compiler_tag, no_cache)
    results = []
    for package in packages:
        result = _svc().lifecycle.remove(package, options, assume_yes=force)
        echo_result(result)
        results.append(result)
    finish(results)
