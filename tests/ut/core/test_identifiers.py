"""包参数 / 扩展标识解析测试"""

from __future__ import annotations

import pytest

from phpvm.core.exceptions import InputFormatError
from phpvm.core.identifiers import parse_extension_identifier, parse_package_argument


class TestPackageArgument:
    @pytest.mark.parametrize(("text", "target", "ext"), [
        ("php82", "php82", ""),
        ("PHP82", "php82", ""),
        ("php82-nts-x64-vc16", "php82-nts-x64-vc16", ""),
        ("php82-redis5.3.7", "php82", "redis5.3.7"),
        ("php82-nts-x64-vc16-redis5.3.7", "php82-nts-x64-vc16", "redis5.3.7"),
        ("php74-oci8@2.2.0", "php74", "oci8@2.2.0"),
    ])
    def test_forms(self, text: str, target: str, ext: str) -> None:
        parsed = parse_package_argument(text)
        assert parsed.target == target
        assert parsed.extension == ext
        assert parsed.is_extension is bool(ext)

    @pytest.mark.parametrize("text", ["", "php", "php8", "python3", "redis5.3.7"])
    def test_rejects(self, text: str) -> None:
        with pytest.raises(InputFormatError, match="无法识别的包名"):
            parse_package_argument(text)


class TestExtensionIdentifier:
    @pytest.mark.parametrize(("text", "name", "prefix"), [
        ("redis5.3.7", "redis", "5.3.7"),
        ("redis5.3", "redis", "5.3"),
        ("redis", "redis", ""),
        ("pdo_sqlsrv5.10.1", "pdo_sqlsrv", "5.10.1"),
        ("oci8@3.3.0", "oci8", "3.3.0"),
        ("XDebug3", "xdebug", "3"),
    ])
    def test_forms(self, text: str, name: str, prefix: str) -> None:
        ident = parse_extension_identifier(text)
        assert ident.name == name
        assert ident.version_prefix == prefix
        assert ident.raw == text

    @pytest.mark.parametrize("text", ["", "5.3.7", "redis-5.3.7", "redis5.3.7.1.2"])
    def test_rejects(self, text: str) -> None:
        with pytest.raises(InputFormatError):
            parse_extension_identifier(text)
