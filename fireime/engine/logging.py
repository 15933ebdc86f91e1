"""
日志配置

引擎和 API 各用一个命名日志器（fireime.engine / fireime.api），
级别和输出格式来自 EngineConfig：
- log_level: 日志级别
- log_json: 控制台和主日志文件输出 JSON，便于采集

文件日志写到 FIREIME_LOG_DIR（默认项目根目录下的 logs/），
设置 FIREIME_LOG_TO_FILE=0 可关闭。
"""

import os
import sys
import logging
import orjson
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Optional
from pathlib import Path
from functools import wraps
import time


PROJECT_ROOT = Path(__file__).parent.parent.parent
LOG_DIR = Path(os.getenv('FIREIME_LOG_DIR', PROJECT_ROOT / 'logs'))

ENGINE_LOGGER = 'fireime.engine'
API_LOGGER = 'fireime.api'

DETAILED_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s'
SIMPLE_FORMAT = '%(asctime)s | %(levelname)-8s | %(message)s'


class JsonFormatter(logging.Formatter):
    """一行一个 JSON 对象"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'function': record.funcName,
            'line': record.lineno,
        }
        # 请求中间件和计时装饰器附带的字段
        for key in ('request_id', 'duration_ms'):
            if hasattr(record, key):
                entry[key] = getattr(record, key)
        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)
        return orjson.dumps(entry).decode('utf-8')


class ColorFormatter(logging.Formatter):
    """终端彩色级别名"""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        # 复制一份，避免污染其它 handler 看到的 levelname
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{self.COLORS.get(record.levelname, '')}{record.levelname}{self.RESET}"
        return super().format(record)


def _file_logging_enabled() -> bool:
    return os.getenv('FIREIME_LOG_TO_FILE', '1') not in ('0', 'false', 'no')


def _console_handler(json_format: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    if json_format:
        handler.setFormatter(JsonFormatter())
    elif sys.stdout.isatty():
        handler.setFormatter(ColorFormatter(SIMPLE_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(SIMPLE_FORMAT))
    return handler


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter,
                      max_bytes: int, backup_count: int) -> logging.Handler:
    handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding='utf-8')
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    name: str,
    level: str = 'INFO',
    log_to_file: Optional[bool] = None,
    log_to_console: bool = True,
    json_format: bool = False,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """
    (重新)配置一个命名日志器，已有 handler 会被关闭替换

    Args:
        name: 日志器名称
        level: 日志级别
        log_to_file: 是否写文件，None 时看 FIREIME_LOG_TO_FILE
        log_to_console: 是否输出到 stdout
        json_format: 控制台和主日志文件是否用 JSON
        max_bytes / backup_count: 文件轮转参数

    Returns:
        配置好的 Logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if log_to_console:
        logger.addHandler(_console_handler(json_format))

    if log_to_file is None:
        log_to_file = _file_logging_enabled()
    if log_to_file:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        main_formatter = JsonFormatter() if json_format else logging.Formatter(DETAILED_FORMAT)
        logger.addHandler(_rotating_handler(
            LOG_DIR / f'{name}.log', logging.DEBUG, main_formatter, max_bytes, backup_count))
        # 错误日志单独文件，始终是文本格式
        logger.addHandler(_rotating_handler(
            LOG_DIR / f'{name}_error.log', logging.ERROR, logging.Formatter(DETAILED_FORMAT),
            max_bytes, backup_count))

    return logger


def configure_logging(config) -> logging.Logger:
    """按 EngineConfig 的 log_level / log_json 配置引擎和 API 日志器"""
    global engine_logger, api_logger
    engine_logger = setup_logging(ENGINE_LOGGER, level=config.log_level, json_format=config.log_json)
    api_logger = setup_logging(API_LOGGER, level=config.log_level, json_format=config.log_json)
    return engine_logger


def log_execution_time(logger: logging.Logger):
    """装饰器：在 DEBUG 级别记录耗时，失败时记录错误后继续抛出"""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                logger.error(f"{func.__name__} 执行失败, 耗时: {elapsed:.2f}ms, 错误: {e}",
                             extra={'duration_ms': round(elapsed, 2)})
                raise
            elapsed = (time.perf_counter() - start) * 1000
            logger.debug(f"{func.__name__} 执行完成, 耗时: {elapsed:.2f}ms",
                         extra={'duration_ms': round(elapsed, 2)})
            return result
        return wrapper
    return decorator


engine_logger: Optional[logging.Logger] = None
api_logger: Optional[logging.Logger] = None


def get_engine_logger() -> logging.Logger:
    """引擎日志器；configure_logging 之前按环境变量 LOG_LEVEL 配置"""
    global engine_logger
    if engine_logger is None:
        engine_logger = setup_logging(ENGINE_LOGGER, level=os.getenv('LOG_LEVEL', 'INFO'))
    return engine_logger


def get_api_logger() -> logging.Logger:
    """API 日志器"""
    global api_logger
    if api_logger is None:
        api_logger = setup_logging(API_LOGGER, level=os.getenv('LOG_LEVEL', 'INFO'))
    return api_logger
