"""版本总览 / 扩展搜索 测试"""

from __future__ import annotations

import pytest

from phpvm.core.config import ResolveOptions
from phpvm.core.exceptions import InputFormatError
from phpvm.services.container import ServiceContainer


@pytest.fixture()
def queries(container: ServiceContainer):  # noqa: ANN201
    return container.queries


class TestOverview:
    def test_best_build_per_major_minor(self, site, queries) -> None:  # noqa: ANN001
        site.publish_base("8.2.10")
        site.publish_base("8.2.10", ts="ts")
        site.publish_base("8.2.9", archived=True)
        site.publish_base("8.1.20")
        site.publish_base("7.4.33", ts="ts", vc=15, archived=True)

        rows = queries.overview()
        assert [r.major_minor for r in rows] == ["7.4", "8.1", "8.2"]
        assert rows[2].latest == ["8.2.10 (nts-x64-vc16)"]
        assert rows[0].latest == ["7.4.33 (ts-x64-vc15)"]

    def test_show_all_lists_every_variant(self, site, queries) -> None:  # noqa: ANN001
        site.publish_base("8.2.10")
        site.publish_base("8.2.9", ts="ts")
        rows = queries.overview(ResolveOptions(show_all=True))
        assert rows[0].latest == ["php82-nts-x64-vc16 8.2.10", "php82-ts-x64-vc16 8.2.9"]

    def test_installed_with_update_flag(self, site, container: ServiceContainer) -> None:  # noqa: ANN001
        site.publish_base("8.2.9")
        assert container.lifecycle.install("php82").ok
        site.publish_base("8.2.10")

        rows = container.queries.overview(ResolveOptions(force_refresh=True))
        [state] = rows[0].installed
        assert state.variant_key == "php82-nts-x64-vc16"
        assert state.patch_version == "8.2.9"
        assert state.update_available is True

    def test_installed_without_remote_still_listed(self, site, container: ServiceContainer) -> None:  # noqa: ANN001
        site.publish_base("8.2.10")
        container.registry.upsert_package("php80-nts-x64-vc16", {"current_patch_version": "8.0.30"})
        rows = container.queries.overview()
        assert [r.major_minor for r in rows] == ["8.0", "8.2"]
        assert rows[0].installed[0].update_available is False


class TestSearchExtensions:
    @pytest.fixture()
    def populated(self, site):  # noqa: ANN001, ANN201
        site.publish_extension("redis", "5.3.7", "8.2")
        site.publish_extension("redis", "6.0.2", "8.1")
        site.publish_extension("redis", "6.0.2", "8.2", ts="ts")
        site.publish_extension("redis", "6.0.2", "8.2", arch="x86")
        site.publish_extension("redis", "6.0.2", "8.2")
        site.publish_extension("apcu", "5.1.22", "8.2")
        return site

    def test_sorted_results(self, populated, queries) -> None:  # noqa: ANN001
        hits = queries.search_extensions("redis")
        assert [(h.extension_version, h.php_major_minor, h.thread_safety, h.architecture) for h in hits] == [
            ("6.0.2", "8.2", "nts", "x64"),
            ("6.0.2", "8.2", "nts", "x86"),
            ("6.0.2", "8.2", "ts", "x64"),
            ("6.0.2", "8.1", "nts", "x64"),
            ("5.3.7", "8.2", "nts", "x64"),
        ]

    def test_filters(self, populated, queries) -> None:  # noqa: ANN001
        hits = queries.search_extensions("REDIS", ext_version="6.0", php_version="8.2",
                                         thread_safety="nts", architecture="x64")
        assert len(hits) == 1
        assert hits[0].extension_version == "6.0.2"

    def test_blank_keyword_rejected(self, populated, queries, transport) -> None:  # noqa: ANN001
        with pytest.raises(InputFormatError, match="关键字"):
            queries.search_extensions("  ")
        assert transport.requests == []

    def test_keyword_substring(self, populated, queries) -> None:  # noqa: ANN001
        assert {h.extension_name for h in queries.search_extensions("a")} == {"apcu"}
        assert queries.search_extensions("xdebug") == []
