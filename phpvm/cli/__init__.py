"""phpvm 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
服务容器挂在 click 上下文上（ctx.obj），测试时可直接传入替身容器。
"""

from __future__ import annotations

import os
from typing import Any, Callable

import click

from phpvm import __version__
from phpvm.core.config import Config, ResolveOptions
from phpvm.core.exceptions import PvmError
from phpvm.core.models import OperationResult
from phpvm.services.container import ServiceContainer
from phpvm.utils.logger import setup_logging


def _svc() -> ServiceContainer:
    """获取当前命令的服务容器"""
    container: ServiceContainer = click.get_current_context().obj
    return container


def variant_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """--ts/--nts、--arch、--vc、--no-cache 公共选项"""
    func = click.option("--no-cache", is_flag=True, default=False,
                        help="忽略缓存，重新抓取远端目录")(func)
    func = click.option("--vc", "compiler_tag", type=int, default=None,
                        help="编译器版本，如 16")(func)
    func = click.option("--arch", type=click.Choice(["x64", "x86"], case_sensitive=False),
                        default=None, help="CPU 架构")(func)
    func = click.option("--ts/--nts", "thread_safe", default=None,
                        help="线程安全 / 非线程安全构建")(func)
    return func


def build_options(
    thread_safe: bool | None,
    arch: str | None,
    compiler_tag: int | None,
    no_cache: bool,
    show_all: bool = False,
) -> ResolveOptions:
    try:
        return ResolveOptions(
            thread_safety=None if thread_safe is None else ("ts" if thread_safe else "nts"),
            architecture=arch,
            compiler_tag=compiler_tag,
            force_refresh=no_cache,
            show_all=show_all,
        )
    except PvmError as e:
        raise click.BadParameter(str(e)) from e


def echo_result(result: OperationResult) -> None:
    """输出结果；失败时写到 stderr"""
    prefix = "" if result.ok else f"[{result.status.value}] "
    click.echo(f"{prefix}{result.message}", err=not result.ok)
    for line in result.details:
        click.echo(f"  - {line}", err=not result.ok)


def finish(results: list[OperationResult]) -> None:
    """全部成功退出 0，否则退出 1"""
    if not all(r.ok for r in results):
        raise SystemExit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("--base-dir", default=None, envvar="PHPVM_HOME",
              help="phpvm 工作目录（默认当前目录）")
@click.pass_context
def main(ctx: click.Context, base_dir: str | None) -> None:
    """phpvm - Windows PHP 版本管理工具"""
    setup_logging(
        level=os.getenv("PHPVM_LOG_LEVEL", "WARNING"),
        json_output=os.getenv("PHPVM_LOG_JSON", "") == "1",
    )
    if ctx.obj is None:
        try:
            container = ServiceContainer(Config.for_base_dir(base_dir or os.getcwd()))
            # 注册表文档损坏时在这里报告，而不是在子命令中途
            _ = container.registry
            ctx.obj = container
        except PvmError as e:
            click.echo(f"配置错误: {e}", err=True)
            raise SystemExit(1) from e


# 注册各领域子命令
from phpvm.cli.cmd_install import register as _reg_install  # noqa: E402
from phpvm.cli.cmd_upgrade import register as _reg_upgrade  # noqa: E402
from phpvm.cli.cmd_uninstall import register as _reg_uninstall  # noqa: E402
from phpvm.cli.cmd_list import register as _reg_list  # noqa: E402

_reg_install(main)
_reg_upgrade(main)
_reg_uninstall(main)
_reg_list(main)
