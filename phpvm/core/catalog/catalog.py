"""远端构建目录

职责:
- 抓取 releases / archives 两个列表页，解析出全部基础构建
- 抓取 PECL 扩展目录树（扩展 → 版本目录 → 文件），解析出扩展构建
- 通过 CacheStore 缓存结果，TTL 内不重复抓取

列表页获取失败（非 200 / 网络故障）直接抛出 TransportError，不重试。
"""

from __future__ import annotations

import logging
from urllib.parse import urljoin

from phpvm.core.cache import (
    ALL_BUILDS_BUCKET,
    PECL_INDEX_BUCKET,
    CacheStore,
    pecl_bucket,
)
from phpvm.core.catalog.grammar import (
    is_version_dir,
    parse_base_filename,
    parse_extension_filename,
)
from phpvm.core.catalog.listing import HrefListingParser, entry_name
from phpvm.core.config import Config
from phpvm.core.models import BaseBuildRecord, ExtensionBuildRecord
from phpvm.core.protocols import DirectoryListingParser, Transport
from phpvm.utils.deadline import Deadline

logger = logging.getLogger(__name__)


def _dir_url(url: str) -> str:
    return url if url.endswith("/") else url + "/"


class BuildCatalog:
    """远端构建目录（带缓存）"""

    def __init__(
        self,
        config: Config,
        transport: Transport,
        cache: CacheStore,
        parser: DirectoryListingParser | None = None,
    ) -> None:
        self.config = config
        self.transport = transport
        self.cache = cache
        self.parser = parser or HrefListingParser()

    # ------------------------------------------------------------------
    # 目录列表
    # ------------------------------------------------------------------

    def _children(self, url: str, deadline: Deadline | None) -> list[str]:
        """列出 url 下的直接子条目名（目录项不带末尾 /）

        href 可能是相对名也可能是站内绝对路径，统一按 url 解析后
        只保留位于 url 之下的条目，上级目录链接自然被排除。
        """
        base = _dir_url(url)
        text = self.transport.get_text(base, deadline=deadline)
        names: list[str] = []
        for entry in self.parser.parse(text):
            resolved = urljoin(base, entry)
            if not resolved.startswith(base) or resolved == base:
                continue
            name = entry_name(resolved[len(base):])
            if name and name not in names:
                names.append(name)
        return names

    # ------------------------------------------------------------------
    # 基础构建
    # ------------------------------------------------------------------

    def _scrape_base_builds(self, deadline: Deadline | None) -> list[BaseBuildRecord]:
        builds: list[BaseBuildRecord] = []
        for source in (self.config.releases_url, self.config.archives_url):
            base = _dir_url(source)
            found = 0
            for name in self._children(base, deadline):
                record = parse_base_filename(name, base)
                if record is None:
                    continue
                builds.append(record)
                found += 1
            logger.info("已解析基础构建: %s (%d 个)", base, found)
        return builds

    def list_base_builds(
        self, force_refresh: bool = False, *, deadline: Deadline | None = None,
    ) -> list[BaseBuildRecord]:
        """全部基础构建（releases 在前，archives 在后）"""
        payload = self.cache.get_or_refresh(
            ALL_BUILDS_BUCKET,
            self.config.cache_ttl,
            force_refresh,
            lambda: [b.to_dict() for b in self._scrape_base_builds(deadline)],
        )
        return [BaseBuildRecord.from_dict(item) for item in payload]

    # ------------------------------------------------------------------
    # PECL 扩展
    # ------------------------------------------------------------------

    def _extension_url(self, extension_name: str) -> str:
        return _dir_url(self.config.pecl_base_url) + extension_name + "/"

    def _scrape_extension_builds(
        self, extension_name: str, deadline: Deadline | None,
    ) -> list[ExtensionBuildRecord]:
        ext_url = self._extension_url(extension_name)
        builds: list[ExtensionBuildRecord] = []
        for ver in self._children(ext_url, deadline):
            if not is_version_dir(ver):
                logger.debug("跳过非版本目录: %s%s", ext_url, ver)
                continue
            ver_url = f"{ext_url}{ver}/"
            for name in self._children(ver_url, deadline):
                record = parse_extension_filename(name, extension_name, ver_url)
                if record is not None:
                    builds.append(record)
        logger.info("已解析扩展构建: %s (%d 个)", extension_name, len(builds))
        return builds

    def list_extension_builds(
        self,
        extension_name: str,
        force_refresh: bool = False,
        *,
        deadline: Deadline | None = None,
    ) -> list[ExtensionBuildRecord]:
        """某个扩展的全部构建"""
        name = extension_name.lower()
        payload = self.cache.get_or_refresh(
            pecl_bucket(name),
            self.config.cache_ttl,
            force_refresh,
            lambda: [b.to_dict() for b in self._scrape_extension_builds(name, deadline)],
        )
        return [ExtensionBuildRecord.from_dict(item) for item in payload]

    def list_extension_names(
        self, force_refresh: bool = False, *, deadline: Deadline | None = None,
    ) -> list[str]:
        """PECL 根目录下的全部扩展名"""
        return self.cache.get_or_refresh(
            PECL_INDEX_BUCKET,
            self.config.cache_ttl,
            force_refresh,
            lambda: self._children(self.config.pecl_base_url, deadline),
        )
