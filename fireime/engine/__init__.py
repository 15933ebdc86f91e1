from .config import (
    InputScheme, EngineConfig, Candidate, LookupResult, MatchKind, Preferences,
    TYPE_WUBI, TYPE_PINYIN, default_db_path,
)
from .errors import FireError, StoreUnavailable, StatementPrepareFailed, InsertFailed
from .store import LexiconStore, read_table_file
from .query import QueryBuilder
from .events import EventBus, Signal
from .core import LookupSession, z_key_transform
from .logging import setup_logging, configure_logging, get_api_logger, get_engine_logger


def create_session(config: EngineConfig = None, preferences: Preferences = None) -> LookupSession:
    """
    创建并打开查询会话

    Args:
        config: 引擎配置
        preferences: 偏好设置（可选），codeMode / candidateCount 变化时自动重建语句

    Returns:
        已打开的 LookupSession
    """
    if preferences is not None:
        config = preferences.config
    config = (config or EngineConfig()).validate()
    configure_logging(config)
    session = LookupSession(LexiconStore(config.db_path), config).open()
    if preferences is not None:
        preferences.subscribe(
            lambda cfg: session.on_config_changed(cfg.code_mode, cfg.candidate_count)
        )
    return session


__all__ = [
    # 会话
    'LookupSession',
    'create_session',
    'z_key_transform',
    # 配置
    'InputScheme',
    'EngineConfig',
    'Candidate',
    'LookupResult',
    'MatchKind',
    'Preferences',
    'TYPE_WUBI',
    'TYPE_PINYIN',
    'default_db_path',
    # 词库
    'LexiconStore',
    'read_table_file',
    'QueryBuilder',
    # 事件
    'EventBus',
    'Signal',
    # 错误
    'FireError',
    'StoreUnavailable',
    'StatementPrepareFailed',
    'InsertFailed',
    # 日志
    'setup_logging',
    'configure_logging',
    'get_api_logger',
    'get_engine_logger',
]
