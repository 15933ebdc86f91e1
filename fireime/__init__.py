"""
FireIME - 五笔 / 拼音输入法候选查询引擎

sqlite 码表查询、分页、z 键通配和选词调频
"""

__version__ = "0.1.0"

from fireime.engine import (
    LookupSession,
    create_session,
    InputScheme,
    EngineConfig,
    Candidate,
    LookupResult,
    MatchKind,
    Preferences,
    LexiconStore,
    FireError,
    StoreUnavailable,
    StatementPrepareFailed,
    InsertFailed,
)

__all__ = [
    "__version__",
    # 会话
    "LookupSession",
    "create_session",
    # 配置
    "InputScheme",
    "EngineConfig",
    "Candidate",
    "LookupResult",
    "MatchKind",
    "Preferences",
    # 词库
    "LexiconStore",
    # 错误
    "FireError",
    "StoreUnavailable",
    "StatementPrepareFailed",
    "InsertFailed",
]
