"""尽力删除 + php.ini 行级修改 测试"""

from __future__ import annotations

from pathlib import Path

from phpvm.utils.fs import (
    append_ini_line,
    remove_file_best_effort,
    remove_first_ini_line,
    remove_tree_best_effort,
)


class TestRemoveTree:
    def test_removes_nested_tree(self, tmp_path: Path) -> None:
        root = tmp_path / "php82"
        (root / "ext" / "deep").mkdir(parents=True)
        (root / "php.exe").write_text("x")
        (root / "ext" / "deep" / "a.dll").write_text("y")
        assert remove_tree_best_effort(root) == []
        assert not root.exists()

    def test_missing_root(self, tmp_path: Path) -> None:
        assert remove_tree_best_effort(tmp_path / "nope") == []


class TestRemoveFile:
    def test_existing(self, tmp_path: Path) -> None:
        f = tmp_path / "a.dll"
        f.write_text("x")
        assert remove_file_best_effort(f) is True
        assert not f.exists()

    def test_missing(self, tmp_path: Path) -> None:
        assert remove_file_best_effort(tmp_path / "a.dll") is False


class TestIniLines:
    def test_append_adds_newline_when_missing(self, tmp_path: Path) -> None:
        ini = tmp_path / "php.ini"
        ini.write_text("memory_limit=1G", encoding="utf-8")
        append_ini_line(ini, 'extension="php_redis.dll"')
        assert ini.read_text(encoding="utf-8") == 'memory_limit=1G\nextension="php_redis.dll"\n'

    def test_append_is_unconditional(self, tmp_path: Path) -> None:
        ini = tmp_path / "php.ini"
        ini.write_text("", encoding="utf-8")
        append_ini_line(ini, "a")
        append_ini_line(ini, "a")
        assert ini.read_text(encoding="utf-8") == "a\na\n"

    def test_remove_first_only(self, tmp_path: Path) -> None:
        ini = tmp_path / "php.ini"
        ini.write_text('x\r\nextension="php_redis.dll"\r\ny\r\nextension="php_redis.dll"\r\n', encoding="utf-8", newline="")
        assert remove_first_ini_line(ini, 'extension="php_redis.dll"') is True
        assert ini.read_bytes() == b'x\r\ny\r\nextension="php_redis.dll"\r\n'

    def test_remove_no_match(self, tmp_path: Path) -> None:
        ini = tmp_path / "php.ini"
        ini.write_text("x\n", encoding="utf-8")
        assert remove_first_ini_line(ini, "missing") is False
        assert remove_first_ini_line(ini, "") is False
        assert ini.read_text(encoding="utf-8") == "x\n"

    def test_remove_missing_file(self, tmp_path: Path) -> None:
        assert remove_first_ini_line(tmp_path / "php.ini", "x") is False
