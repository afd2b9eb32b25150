"""服务容器 — 统一依赖注入

所有组件通过容器获取，同一容器内的实例共享状态（同一份注册表文档等）。
容器必须显式传入 Config，不存在全局配置。

依赖关系图（→ 表示依赖）:
  catalog   → transport, cache
  lifecycle → catalog, registry, transport, prompt, resolver
  queries   → catalog, registry

用法:
    container = ServiceContainer(Config.for_base_dir("."))
    result = container.lifecycle.add("php82")

    # 测试中注入替身
    container = ServiceContainer(cfg, transport=FakeTransport(...),
                                 prompt=HeadlessPrompt())
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from phpvm.core.cache import CacheStore
    from phpvm.core.catalog import BuildCatalog
    from phpvm.core.config import Config
    from phpvm.core.lifecycle import LifecycleManager
    from phpvm.core.package_registry import PackageRegistry
    from phpvm.core.protocols import SelectionPrompt, Transport
    from phpvm.core.queries import CatalogQueries
    from phpvm.core.resolver import VariantResolver

logger = logging.getLogger(__name__)


class ServiceContainer:
    """懒加载服务容器"""

    def __init__(
        self,
        config: Config,
        *,
        transport: Transport | None = None,
        prompt: SelectionPrompt | None = None,
    ) -> None:
        self._config = config
        self._instances: dict[str, object] = {}
        if transport is not None:
            self._instances["transport"] = transport
        if prompt is not None:
            self._instances["prompt"] = prompt

    @property
    def config(self) -> Config:
        return self._config

    # ---- 协作者 ----

    @property
    def transport(self) -> Transport:
        if "transport" not in self._instances:
            from phpvm.utils.net import HttpTransport
            self._instances["transport"] = HttpTransport(timeout=self._config.http_timeout)
        return self._instances["transport"]  # type: ignore[return-value]

    @property
    def prompt(self) -> SelectionPrompt:
        if "prompt" not in self._instances:
            from phpvm.utils.prompt import ClickPrompt
            self._instances["prompt"] = ClickPrompt()
        return self._instances["prompt"]  # type: ignore[return-value]

    # ---- 核心组件 ----

    @property
    def cache(self) -> CacheStore:
        if "cache" not in self._instances:
            from phpvm.core.cache import CacheStore
            self._instances["cache"] = CacheStore(self._config.cache_file)
        return self._instances["cache"]  # type: ignore[return-value]

    @property
    def catalog(self) -> BuildCatalog:
        if "catalog" not in self._instances:
            from phpvm.core.catalog import BuildCatalog
            self._instances["catalog"] = BuildCatalog(
                config=self._config,
                transport=self.transport,
                cache=self.cache,
            )
        return self._instances["catalog"]  # type: ignore[return-value]

    @property
    def registry(self) -> PackageRegistry:
        if "registry" not in self._instances:
            from phpvm.core.package_registry import PackageRegistry
            self._instances["registry"] = PackageRegistry(self._config.registry_file)
        return self._instances["registry"]  # type: ignore[return-value]

    @property
    def resolver(self) -> VariantResolver:
        if "resolver" not in self._instances:
            from phpvm.core.resolver import VariantResolver
            self._instances["resolver"] = VariantResolver(self.prompt)
        return self._instances["resolver"]  # type: ignore[return-value]

    @property
    def lifecycle(self) -> LifecycleManager:
        if "lifecycle" not in self._instances:
            from phpvm.core.lifecycle import LifecycleManager
            self._config.ensure_dirs()
            self._instances["lifecycle"] = LifecycleManager(
                config=self._config,
                catalog=self.catalog,
                registry=self.registry,
                transport=self.transport,
                prompt=self.prompt,
                resolver=self.resolver,
            )
        return self._instances["lifecycle"]  # type: ignore[return-value]

    @property
    def queries(self) -> CatalogQueries:
        if "queries" not in self._instances:
            from phpvm.core.queries import CatalogQueries
            self._instances["queries"] = CatalogQueries(
                catalog=self.catalog,
                registry=self.registry,
                operation_timeout=self._config.operation_timeout,
            )
        return self._instances["queries"]  # type: ignore[return-value]
