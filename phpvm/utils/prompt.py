"""SelectionPrompt 实现

- ClickPrompt:    终端交互（click.prompt / click.confirm）
- HeadlessPrompt: 无头 / 测试环境，按确定性策略直接给出默认选择
"""

from __future__ import annotations

import logging

import click

from phpvm.core.exceptions import AmbiguousSelectionError

logger = logging.getLogger(__name__)


class ClickPrompt:
    """基于 click 的交互式选择"""

    def choose(self, question: str, options: list[str], default_index: int = 0) -> int:
        click.echo(question)
        for idx, label in enumerate(options):
            marker = " (默认)" if idx == default_index else ""
            click.echo(f"  [{idx}] {label}{marker}")
        picked: int = click.prompt(
            "编号", type=click.IntRange(0, len(options) - 1),
            default=default_index, show_default=True,
        )
        return picked

    def confirm(self, question: str, default: bool = False) -> bool:
        return click.confirm(question, default=default)


class HeadlessPrompt:
    """无头选择策略

    choose: 返回计算出的默认下标；strict=True 时拒绝选择，抛出 AmbiguousSelectionError
    confirm: assume_yes 为 None 时返回问题自带的默认值，否则返回 assume_yes
    """

    def __init__(self, *, assume_yes: bool | None = None, strict: bool = False) -> None:
        self.assume_yes = assume_yes
        self.strict = strict
        self.questions: list[str] = []

    def choose(self, question: str, options: list[str], default_index: int = 0) -> int:
        self.questions.append(question)
        if self.strict:
            raise AmbiguousSelectionError(
                f"{question} 候选: {', '.join(options)}", candidates=list(options),
            )
        logger.info("无头模式自动选择: %s", options[default_index])
        return default_index

    def confirm(self, question: str, default: bool = False) -> bool:
        self.questions.append(question)
        answer = default if self.assume_yes is None else self.assume_yes
        logger.info("无头模式确认: %s -> %s", question, "是" if answer else "否")
        return answer
