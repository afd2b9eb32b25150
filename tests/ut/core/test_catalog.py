"""BuildCatalog / 文件名语法 / 目录页解析 单元测试"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from phpvm.core.cache import ALL_BUILDS_BUCKET, CacheStore, pecl_bucket
from phpvm.core.catalog import BuildCatalog, HrefListingParser
from phpvm.core.catalog.grammar import is_version_dir, parse_base_filename, parse_extension_filename
from phpvm.core.catalog.listing import entry_name
from phpvm.core.config import Config
from phpvm.core.exceptions import TransportError

BASE = "https://windows.php.net/downloads/releases/"


class TestBaseGrammar:
    def test_nts(self) -> None:
        rec = parse_base_filename("php-8.2.10-nts-Win32-vs16-x64.zip", BASE)
        assert rec is not None
        assert rec.full_version == "8.2.10"
        assert rec.major_minor == "8.2"
        assert rec.thread_safety == "nts"
        assert rec.architecture == "x64"
        assert rec.compiler_tag == 16
        assert rec.download_url == BASE + "php-8.2.10-nts-Win32-vs16-x64.zip"

    def test_missing_nts_means_ts(self) -> None:
        rec = parse_base_filename("php-7.4.33-Win32-vc15-x86.zip", BASE)
        assert rec is not None
        assert rec.thread_safety == "ts"
        assert rec.architecture == "x86"
        assert rec.compiler_tag == 15

    @pytest.mark.parametrize("name", [
        "php-8.2.10-src.zip",
        "php-debug-pack-8.2.10-nts-Win32-vs16-x64.zip",
        "php-devel-pack-8.2.10-Win32-vs16-x64.zip",
        "php-8.2.10-nts-Win32-vs16-x64.zip.sha256",
        "php-test-pack-8.2.10.zip",
        "archives",
    ])
    def test_non_matching(self, name: str) -> None:
        assert parse_base_filename(name, BASE) is None


class TestExtensionGrammar:
    def test_zip(self) -> None:
        rec = parse_extension_filename(
            "php_redis-5.3.7-8.2-nts-vs16-x64.zip", "Redis", "https://pecl/redis/5.3.7/",
        )
        assert rec is not None
        assert rec.extension_name == "redis"
        assert rec.extension_version == "5.3.7"
        assert rec.php_major_minor == "8.2"
        assert rec.is_archive
        assert rec.download_url == "https://pecl/redis/5.3.7/php_redis-5.3.7-8.2-nts-vs16-x64.zip"

    def test_dll_with_four_part_version(self) -> None:
        rec = parse_extension_filename("php_xdebug-3.1.6.1-7.4-ts-vc15-x86.dll", "xdebug", "u/")
        assert rec is not None
        assert rec.extension_version == "3.1.6.1"
        assert not rec.is_archive

    def test_non_matching(self) -> None:
        assert parse_extension_filename("php_redis-5.3.7-src.tgz", "redis", "u/") is None

    @pytest.mark.parametrize(("name", "ok"), [
        ("5.3.7", True), ("1.0", True), ("3.1.6.1", True),
        ("latest", False), ("5", False), ("1.2.3.4.5", False),
    ])
    def test_version_dir(self, name: str, ok: bool) -> None:
        assert is_version_dir(name) is ok


class TestHrefListingParser:
    def test_extracts_and_dedupes(self) -> None:
        html = """
        <a href="../">Parent</a>
        <a href="?C=N;O=D">Name</a>
        <a HREF='php-8.2.10-nts-Win32-vs16-x64.zip'>x</a>
        <a href="php-8.2.10-nts-Win32-vs16-x64.zip">dup</a>
        <a href="/downloads/releases/archives/">archives</a>
        <a href="php%2D8.1.0.zip">encoded</a>
        """
        assert HrefListingParser().parse(html) == [
            "php-8.2.10-nts-Win32-vs16-x64.zip",
            "/downloads/releases/archives/",
            "php-8.1.0.zip",
        ]

    def test_entry_name(self) -> None:
        assert entry_name("/a/b/php.zip") == "php.zip"
        assert entry_name("5.3.7/") == "5.3.7"


class TestBuildCatalog:
    @pytest.fixture()
    def catalog(self, config: Config, transport) -> BuildCatalog:  # noqa: ANN001
        return BuildCatalog(config, transport, CacheStore(config.cache_file))

    def test_base_builds_from_both_sources(self, site, catalog: BuildCatalog) -> None:  # noqa: ANN001
        site.publish_base("8.2.10")
        site.publish_base("8.2.9", archived=True)
        builds = catalog.list_base_builds()
        assert [b.full_version for b in builds] == ["8.2.10", "8.2.9"]
        assert builds[1].download_url.startswith(site.config.archives_url)

    def test_absolute_hrefs(self, config: Config, transport, catalog: BuildCatalog) -> None:  # noqa: ANN001
        transport.pages[config.releases_url] = (
            '<a href="/downloads/releases/php-8.3.1-nts-Win32-vs16-x64.zip">x</a>'
            '<a href="/downloads/">up</a>'
        )
        transport.pages[config.archives_url] = ""
        builds = catalog.list_base_builds()
        assert [b.download_url for b in builds] == [
            config.releases_url + "php-8.3.1-nts-Win32-vs16-x64.zip",
        ]

    def test_cached_within_ttl(self, site, catalog: BuildCatalog, transport) -> None:  # noqa: ANN001
        site.publish_base("8.2.10")
        catalog.list_base_builds()
        gets = transport.count("GET")
        site.publish_base("8.2.11")
        assert [b.full_version for b in catalog.list_base_builds()] == ["8.2.10"]
        assert transport.count("GET") == gets
        assert [b.full_version for b in catalog.list_base_builds(force_refresh=True)] == ["8.2.10", "8.2.11"]
        assert ALL_BUILDS_BUCKET in json.loads(Path(catalog.cache.cache_file).read_text(encoding="utf-8"))

    def test_listing_failure_propagates(self, catalog: BuildCatalog) -> None:
        with pytest.raises(TransportError):
            catalog.list_base_builds()

    def test_extension_builds(self, site, catalog: BuildCatalog) -> None:  # noqa: ANN001
        site.publish_extension("redis", "5.3.7", "8.2")
        site.publish_extension("redis", "5.3.7", "8.1", ts="ts")
        site.publish_extension("redis", "6.0.2", "8.2", kind="dll")
        builds = catalog.list_extension_builds("REDIS")
        assert sorted((b.extension_version, b.php_major_minor, b.thread_safety) for b in builds) == [
            ("5.3.7", "8.1", "ts"), ("5.3.7", "8.2", "nts"), ("6.0.2", "8.2", "nts"),
        ]
        assert pecl_bucket("redis") in json.loads(Path(catalog.cache.cache_file).read_text(encoding="utf-8"))

    def test_extension_names(self, site, catalog: BuildCatalog) -> None:  # noqa: ANN001
        site.publish_extension("redis", "5.3.7", "8.2")
        site.publish_extension("apcu", "5.1.22", "8.2")
        assert catalog.list_extension_names() == ["redis", "apcu"]
