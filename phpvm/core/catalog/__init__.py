"""远端构建目录模块

拆分说明:
- listing.py: 目录列表页解析（href 提取）
- grammar.py: 构建文件名语法
- catalog.py: 抓取 + 缓存
"""

from phpvm.core.catalog.catalog import BuildCatalog
from phpvm.core.catalog.listing import HrefListingParser

__all__ = [
    "BuildCatalog",
    "HrefListingParser",
]
