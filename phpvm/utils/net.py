"""网络工具 — URL 安全校验 + 基于 urllib 的 HTTP 传输"""

from __future__ import annotations

import logging
import urllib.error
import urllib.request
from pathlib import Path
from urllib.parse import urlparse

from phpvm import __version__
from phpvm.core.exceptions import InputFormatError, TransportError
from phpvm.utils.deadline import Deadline

logger = logging.getLogger(__name__)

_ALLOWED_SCHEMES = frozenset(("http", "https"))
_CHUNK_SIZE = 64 * 1024
_USER_AGENT = f"phpvm/{__version__}"


def validate_url_scheme(url: str, *, context: str = "") -> None:
    """校验 URL 仅使用 http/https，防止 file:// 等非预期协议访问

    Raises:
        InputFormatError: URL scheme 不在白名单内
    """
    parsed = urlparse(url)
    if parsed.scheme not in _ALLOWED_SCHEMES:
        label = f" ({context})" if context else ""
        raise InputFormatError(
            f"不允许的 URL 协议 '{parsed.scheme}'{label}，"
            f"仅支持 http/https: {url}"
        )


class HttpTransport:
    """urllib 实现的 Transport

    每次请求的超时取 timeout 与 deadline 剩余时间的较小值。
    """

    def __init__(self, timeout: float = 60) -> None:
        self.timeout = timeout

    def _open(self, url: str, method: str, deadline: Deadline | None):  # noqa: ANN202
        validate_url_scheme(url, context=method)
        deadline = deadline or Deadline.never()
        req = urllib.request.Request(
            url, method=method, headers={"User-Agent": _USER_AGENT},
        )
        try:
            resp = urllib.request.urlopen(  # nosec B310
                req, timeout=deadline.timeout_for(self.timeout),
            )
        except urllib.error.HTTPError as e:
            raise TransportError(
                f"{method} {url} 返回 {e.code}", url=url, status_code=e.code,
            ) from e
        except (urllib.error.URLError, OSError) as e:
            raise TransportError(f"{method} {url} 失败: {e}", url=url) from e
        status = getattr(resp, "status", 200)
        if status != 200:
            resp.close()
            raise TransportError(
                f"{method} {url} 返回 {status}", url=url, status_code=status,
            )
        return resp

    def get_text(self, url: str, *, deadline: Deadline | None = None) -> str:
        logger.debug("GET %s", url)
        with self._open(url, "GET", deadline) as resp:
            try:
                body = resp.read()
            except OSError as e:
                raise TransportError(f"读取响应失败: {url} - {e}", url=url) from e
            charset = resp.headers.get_content_charset() or "utf-8"
        return body.decode(charset, errors="replace")

    def head(self, url: str, *, deadline: Deadline | None = None) -> int:
        logger.debug("HEAD %s", url)
        with self._open(url, "HEAD", deadline) as resp:
            return int(getattr(resp, "status", 200))

    def download(
        self, url: str, dest: Path, *, deadline: Deadline | None = None,
    ) -> Path:
        deadline = deadline or Deadline.never()
        logger.info("下载: %s", url)
        dest.parent.mkdir(parents=True, exist_ok=True)
        try:
            with self._open(url, "GET", deadline) as resp, open(dest, "wb") as f:
                while True:
                    deadline.check(f"下载 {url}")
                    chunk = resp.read(_CHUNK_SIZE)
                    if not chunk:
                        break
                    f.write(chunk)
        except OSError as e:
            dest.unlink(missing_ok=True)
            raise TransportError(f"下载失败: {url} - {e}", url=url) from e
        except Exception:
            dest.unlink(missing_ok=True)
            raise
        logger.info("已保存: %s", dest)
        return dest
