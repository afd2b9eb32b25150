"""单元测试共享 fixture — 内存版 Transport + 假 php.net 站点

  PhpSite.publish_base() / publish_extension()
        │  生成 zip 字节并登记下载地址
        │  重建 releases / archives / pecl 目录页
        ▼
  FakeTransport.pages / files  ──>  BuildCatalog / LifecycleManager

无需真实网络，所有请求记录在 FakeTransport.requests 中供断言。
"""

from __future__ import annotations

import io
import zipfile
from pathlib import Path

import pytest

from phpvm.core.config import Config
from phpvm.core.exceptions import TransportError
from phpvm.services.container import ServiceContainer
from phpvm.utils.logger import reset_logging
from phpvm.utils.prompt import HeadlessPrompt

# 真实构建都在 10000 字节以上，填充到这个大小以通过最小体积校验
_PADDING = 12000


def listing_html(*names: str) -> str:
    links = "\n".join(f'<a href="{n}">{n}</a>' for n in names)
    return f'<html><body><pre>\n<a href="../">../</a>\n{links}\n</pre></body></html>'


def build_zip(members: dict[str, bytes | str]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_STORED) as zf:
        for name, data in members.items():
            zf.writestr(name, data.encode("utf-8") if isinstance(data, str) else data)
    return buf.getvalue()


def php_zip(version: str, *, ini_text: str = "; production\n", with_ini: str | None = None) -> bytes:
    """模拟官方 PHP 压缩包；with_ini 不为 None 时额外带一个 php.ini 成员"""
    members: dict[str, bytes | str] = {
        "php.exe": f"php {version}\n".encode() + b"\0" * _PADDING,
        "php.ini-production": ini_text,
        "ext/php_curl.dll": f"curl for {version}",
    }
    if with_ini is not None:
        members["php.ini"] = with_ini
    return build_zip(members)


class FakeTransport:
    """按 URL 返回预置内容的 Transport"""

    def __init__(self) -> None:
        self.pages: dict[str, str] = {}
        self.files: dict[str, bytes] = {}
        self.head_status: dict[str, int] = {}
        self.requests: list[tuple[str, str]] = []

    def get_text(self, url: str, *, deadline=None) -> str:  # noqa: ANN001
        self.requests.append(("GET", url))
        if url not in self.pages:
            raise TransportError(f"GET {url} 返回 404", url=url, status_code=404)
        return self.pages[url]

    def head(self, url: str, *, deadline=None) -> int:  # noqa: ANN001
        self.requests.append(("HEAD", url))
        status = self.head_status.get(url, 200 if url in self.files else 404)
        if status != 200:
            raise TransportError(f"HEAD {url} 返回 {status}", url=url, status_code=status)
        return status

    def download(self, url: str, dest: Path, *, deadline=None) -> Path:  # noqa: ANN001
        self.requests.append(("DOWNLOAD", url))
        if url not in self.files:
            raise TransportError(f"GET {url} 返回 404", url=url, status_code=404)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(self.files[url])
        return dest

    def count(self, method: str) -> int:
        return sum(1 for m, _ in self.requests if m == method)


class PhpSite:
    """windows.php.net + PECL 目录结构的内存模型"""

    def __init__(self, transport: FakeTransport, config: Config) -> None:
        self.transport = transport
        self.config = config
        self.releases: list[str] = []
        self.archives: list[str] = []
        self.extensions: dict[str, dict[str, list[str]]] = {}
        self._rebuild()

    def _rebuild(self) -> None:
        pages = self.transport.pages
        pages[self.config.releases_url] = listing_html("archives/", *self.releases)
        pages[self.config.archives_url] = listing_html(*self.archives)
        pecl = self.config.pecl_base_url
        pages[pecl] = listing_html(*(f"{n}/" for n in self.extensions))
        for name, versions in self.extensions.items():
            pages[f"{pecl}{name}/"] = listing_html("latest/", *(f"{v}/" for v in versions))
            for ver, files in versions.items():
                pages[f"{pecl}{name}/{ver}/"] = listing_html(*files)

    def publish_base(
        self,
        version: str,
        *,
        ts: str = "nts",
        arch: str = "x64",
        vc: int = 16,
        archived: bool = False,
        content: bytes | None = None,
    ) -> str:
        nts = "-nts" if ts == "nts" else ""
        tool = "vs" if vc >= 16 else "vc"
        file_name = f"php-{version}{nts}-Win32-{tool}{vc}-{arch}.zip"
        base = self.config.archives_url if archived else self.config.releases_url
        (self.archives if archived else self.releases).append(file_name)
        url = base + file_name
        self.transport.files[url] = content if content is not None else php_zip(version)
        self._rebuild()
        return url

    def publish_extension(
        self,
        name: str,
        version: str,
        php_mm: str,
        *,
        ts: str = "nts",
        arch: str = "x64",
        vc: int = 16,
        kind: str = "zip",
        content: bytes | None = None,
    ) -> str:
        tool = "vs" if vc >= 16 else "vc"
        file_name = f"php_{name}-{version}-{php_mm}-{ts}-{tool}{vc}-{arch}.{kind}"
        self.extensions.setdefault(name, {}).setdefault(version, []).append(file_name)
        url = f"{self.config.pecl_base_url}{name}/{version}/{file_name}"
        if content is None:
            dll = f"{name} {version} for php {php_mm}".encode()
            content = build_zip({f"php_{name}.dll": dll, "LICENSE": "PHP"}) if kind == "zip" else dll
        self.transport.files[url] = content
        self._rebuild()
        return url


@pytest.fixture()
def config(tmp_path: Path) -> Config:
    return Config.for_base_dir(tmp_path)


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def site(transport: FakeTransport, config: Config) -> PhpSite:
    return PhpSite(transport, config)


@pytest.fixture()
def prompt() -> HeadlessPrompt:
    return HeadlessPrompt()


@pytest.fixture()
def container(config: Config, transport: FakeTransport, prompt: HeadlessPrompt) -> ServiceContainer:
    return ServiceContainer(config, transport=transport, prompt=prompt)


@pytest.fixture()
def make_zip():  # noqa: ANN201
    return build_zip


@pytest.fixture()
def make_php_zip():  # noqa: ANN201
    return php_zip


@pytest.fixture(autouse=True)
def _restore_logging():  # noqa: ANN202
    """CLI 测试会配置 phpvm 日志器，用例结束后还原"""
    yield
    reset_logging()
