"""SelectionPrompt 实现测试"""

from __future__ import annotations

import click
import pytest
from click.testing import CliRunner

from phpvm.core.exceptions import AmbiguousSelectionError
from phpvm.utils.prompt import ClickPrompt, HeadlessPrompt


class TestHeadlessPrompt:
    def test_choose_default(self) -> None:
        prompt = HeadlessPrompt()
        assert prompt.choose("选哪个?", ["a", "b", "c"], 2) == 2
        assert prompt.questions == ["选哪个?"]

    def test_strict_refuses(self) -> None:
        with pytest.raises(AmbiguousSelectionError, match="a, b"):
            HeadlessPrompt(strict=True).choose("选哪个?", ["a", "b"], 0)

    @pytest.mark.parametrize(("assume_yes", "default", "expected"), [
        (None, True, True), (None, False, False), (True, False, True), (False, True, False),
    ])
    def test_confirm(self, assume_yes: bool | None, default: bool, expected: bool) -> None:
        assert HeadlessPrompt(assume_yes=assume_yes).confirm("继续?", default) is expected


@click.command()
def _pick() -> None:
    prompt = ClickPrompt()
    idx = prompt.choose("选择变体:", ["php82-nts-x64-vc16", "php82-ts-x64-vc16"], 0)
    ok = prompt.confirm("确认?", False)
    click.echo(f"picked={idx} ok={ok}")


class TestClickPrompt:
    def test_reads_answers(self) -> None:
        result = CliRunner().invoke(_pick, input="1\ny\n")
        assert result.exit_code == 0
        assert "[1] php82-ts-x64-vc16" in result.output
        assert "picked=1 ok=True" in result.output

    def test_defaults(self) -> None:
        result = CliRunner().invoke(_pick, input="\n\n")
        assert "picked=0 ok=False" in result.output

    def test_out_of_range_reprompts(self) -> None:
        result = CliRunner().invoke(_pick, input="7\n1\nn\n")
        assert "picked=1 ok=False" in result.output
