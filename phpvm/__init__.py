"""phpvm - Windows PHP 运行时与 PECL 扩展版本管理"""

__version__ = "0.3.0"
