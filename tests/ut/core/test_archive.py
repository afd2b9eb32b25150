"""zip 解压工具测试"""

from __future__ import annotations

from pathlib import Path

import pytest

from phpvm.core.exceptions import ArchiveError, DeadlineExceededError
from phpvm.utils.archive import extract_all, extract_first_match, overwrite_except
from phpvm.utils.deadline import Deadline


@pytest.fixture()
def archive(tmp_path: Path, make_zip) -> Path:  # noqa: ANN001
    p = tmp_path / "pkg.zip"
    p.write_bytes(make_zip({
        "php.exe": "new exe",
        "PHP.INI": "; from archive",
        "ext/php_curl.dll": "curl",
        "ext/php_redis.dll": "redis",
    }))
    return p


class TestExtractAll:
    def test_writes_every_member(self, archive: Path, tmp_path: Path) -> None:
        target = tmp_path / "out"
        assert extract_all(archive, target) == 4
        assert (target / "ext" / "php_curl.dll").read_text() == "curl"

    def test_bad_zip(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.zip"
        bad.write_bytes(b"garbage")
        with pytest.raises(ArchiveError, match="无法打开"):
            extract_all(bad, tmp_path / "out")

    def test_rejects_path_traversal(self, tmp_path: Path, make_zip) -> None:  # noqa: ANN001
        evil = tmp_path / "evil.zip"
        evil.write_bytes(make_zip({"../escape.txt": "x"}))
        with pytest.raises(ArchiveError, match="非法"):
            extract_all(evil, tmp_path / "out")
        assert not (tmp_path / "escape.txt").exists()

    def test_expired_deadline(self, archive: Path, tmp_path: Path) -> None:
        ticks = iter([0.0])
        deadline = Deadline(1, clock=lambda: next(ticks, 10.0))
        with pytest.raises(DeadlineExceededError):
            extract_all(archive, tmp_path / "out", deadline=deadline)


class TestOverwriteExcept:
    def test_protected_file_untouched(self, archive: Path, tmp_path: Path) -> None:
        target = tmp_path / "install"
        target.mkdir()
        (target / "php.ini").write_bytes(b"; mine\r\n")
        (target / "php.exe").write_text("old exe")

        written = overwrite_except(archive, target, protected=("php.ini",))
        assert written == 3
        assert (target / "php.ini").read_bytes() == b"; mine\r\n"
        assert (target / "php.exe").read_text() == "new exe"

    def test_nested_member_with_same_name_not_protected(self, tmp_path: Path, make_zip) -> None:  # noqa: ANN001
        src = tmp_path / "nested.zip"
        src.write_bytes(make_zip({"dev/php.ini": "nested"}))
        target = tmp_path / "install"
        overwrite_except(src, target, protected=("php.ini",))
        assert (target / "dev" / "php.ini").read_text() == "nested"


class TestExtractFirstMatch:
    def test_first_dll_wins(self, archive: Path, tmp_path: Path) -> None:
        target = tmp_path / "ext"
        target.mkdir()
        assert extract_first_match(archive, target, suffix=".dll") == "php_curl.dll"
        assert (target / "php_curl.dll").read_text() == "curl"
        assert not (target / "php_redis.dll").exists()

    def test_no_match(self, archive: Path, tmp_path: Path) -> None:
        with pytest.raises(ArchiveError, match=".so"):
            extract_first_match(archive, tmp_path, suffix=".so")
