"""phpvm 日志配置

只配置 phpvm 包自己的日志器，不改动根日志器；由 CLI 入口根据
PHPVM_LOG_LEVEL / PHPVM_LOG_JSON 选择级别和输出格式。
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

PACKAGE_LOGGER = "phpvm"

# 业务代码通过 extra= 附带的上下文字段
CONTEXT_FIELDS = ("variant_key", "error_code")


class JSONFormatter(logging.Formatter):
    """每条记录一行 JSON

    输出格式:
        {"timestamp": ..., "level": "ERROR", "logger": "phpvm.core.lifecycle",
         "message": ..., "line": 42, "variant_key": "php82-nts-x64-vc16",
         "error_code": "TRANSPORT_ERROR"}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            # 使用 record.created，记录事件发生时间而非格式化时间
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "line": record.lineno,
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value:
                log_entry[name] = value
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, ensure_ascii=False)


def setup_logging(level: str = "WARNING", json_output: bool = False) -> logging.Logger:
    """配置 phpvm 日志器并返回它

    参数:
        level: 日志级别字符串（DEBUG, INFO, WARNING, ERROR），无法识别时回退到 WARNING
        json_output: 为 True 时每条日志输出一行 JSON

    说明:
        - 输出到 stderr，stdout 留给命令结果
        - 重复调用会替换已有 handler，不会重复输出
        - 不向根日志器传播，宿主程序的日志配置不受影响
    """
    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    reset_logging()

    pkg_logger.setLevel(getattr(logging, level.upper(), logging.WARNING))
    pkg_logger.propagate = False

    handler = logging.StreamHandler(sys.stderr)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("phpvm [%(levelname)s] %(message)s"))
    pkg_logger.addHandler(handler)
    return pkg_logger


def reset_logging() -> None:
    """移除 phpvm 日志器上的 handlers，恢复向根日志器传播"""
    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in pkg_logger.handlers[:]:
        pkg_logger.removeHandler(handler)
        handler.close()
    pkg_logger.propagate = True
