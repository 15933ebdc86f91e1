import sqlite3
import threading
import time
from typing import Dict, Optional

from .config import (
    EngineConfig, InputScheme, Candidate, LookupResult, MatchKind, TYPE_WUBI,
)
from .cache import PageCache
from .errors import StoreUnavailable, StatementPrepareFailed, InsertFailed
from .events import EventBus, Signal
from .query import QueryBuilder
from .store import LexiconStore
from .logging import get_engine_logger, log_execution_time

logger = get_engine_logger()

# 单字符通配
WILDCARD_ONE = "_"
# 前缀匹配后缀
WILDCARD_ANY = "%"


def z_key_transform(code: str, enabled: bool = True) -> str:
    """z 键查询：首字符之后的 z 替换为单字符通配，首字符保持不变"""
    if not code or not enabled:
        return code
    return code[0] + code[1:].replace("z", WILDCARD_ONE)


class LookupSession:
    """
    候选查询会话

    持有词库句柄和唯一的查询语句：
    - 方案 / 每页数量变化时 rebuild()
    - 每次按键 lookup() 复用语句，只重新绑定参数
    - 选词调频 promote() 使用独立的插入语句，不影响查询语句

    所有操作由同一把锁串行化。
    """

    def __init__(self, store: LexiconStore, config: EngineConfig = None, events: EventBus = None):
        self.store = store
        self.config = config or EngineConfig()
        self.events = events or EventBus()

        self.scheme: InputScheme = self.config.code_mode
        self.page_size: int = self.config.candidate_count

        self._lock = threading.RLock()
        self._sql: Optional[str] = None
        self._cursor: Optional[sqlite3.Cursor] = None
        self._prepare_error: Optional[Exception] = None

        self.cache = PageCache(self.config.cache_size)
        self.stats = {'lookups': 0, 'total_ms': 0.0,
                      'rebuilds': 0, 'promotions': 0, 'promotion_failures': 0}

    # ===== 生命周期 =====

    def open(self) -> "LookupSession":
        with self._lock:
            self.store.open()
            self.rebuild(self.scheme, self.page_size)
        return self

    def close(self):
        """先释放查询语句，再关闭词库；可重复调用"""
        with self._lock:
            self._release_statement()
            self.cache.clear()
            self.store.close()

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def is_ready(self) -> bool:
        return self._cursor is not None and self.store.is_open

    # ===== 查询语句 =====

    @log_execution_time(logger)
    def rebuild(self, scheme, page_size: int):
        """按方案和每页数量重新准备查询语句"""
        with self._lock:
            self._release_statement()
            self.cache.clear()
            self._prepare_error = None

            try:
                parsed = InputScheme.parse(scheme)
                sql = QueryBuilder.build(parsed, page_size)
            except ValueError as e:
                self._prepare_error = e
                logger.error(f"查询语句构建失败: scheme={scheme!r}, page_size={page_size!r}, 错误: {e}")
                raise StatementPrepareFailed(str(e)) from e

            self.scheme = parsed
            self.page_size = page_size

            try:
                db = self.store.connection()
            except StoreUnavailable as e:
                self._prepare_error = e
                raise

            try:
                # EXPLAIN 只编译不执行，表或列不存在时在这里报错
                db.execute(f"explain {sql}", self._bindings("", "", 0)).close()
                cursor = db.cursor()
            except sqlite3.Error as e:
                self._prepare_error = e
                logger.error(f"查询语句准备失败: scheme={self.scheme.value}, 错误: {e}")
                raise StatementPrepareFailed(f"{self.scheme.value}: {e}") from e

            self._sql = sql
            self._cursor = cursor
            self.stats['rebuilds'] += 1
            logger.info(f"查询语句已准备: scheme={self.scheme.value}, page_size={page_size}")
            logger.debug(sql)

    def on_config_changed(self, scheme, page_size: int) -> bool:
        """宿主在偏好变化时调用；只有真正变化才重建"""
        scheme = InputScheme.parse(scheme)
        with self._lock:
            if self._cursor is not None and scheme == self.scheme and page_size == self.page_size:
                return False
            self.rebuild(scheme, page_size)
            return True

    def _release_statement(self):
        if self._cursor is not None:
            try:
                self._cursor.close()
            except sqlite3.ProgrammingError:
                # 连接已先被关闭
                pass
        self._cursor = None
        self._sql = None

    def _require_statement(self) -> sqlite3.Cursor:
        if not self.store.is_open:
            raise StoreUnavailable(f"词库未打开: {self.store.path}")
        if self._cursor is None:
            if self._prepare_error is not None:
                raise StatementPrepareFailed(
                    f"查询语句不可用: {self._prepare_error}"
                ) from self._prepare_error
            raise StatementPrepareFailed("查询语句尚未准备")
        return self._cursor

    @staticmethod
    def _bindings(code: str, query: str, offset: int) -> Dict:
        return {"code": code, "query_prefix": f"{query}{WILDCARD_ANY}", "offset": offset}

    # ===== 查询 =====

    def lookup(self, code: str, page: int = 1) -> LookupResult:
        """
        查询候选

        Args:
            code: 已输入的编码
            page: 页码，从 1 开始

        Returns:
            LookupResult，可解包为 (candidates, has_next)
        """
        if not code:
            return LookupResult([], False, MatchKind.EMPTY, page)
        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            raise ValueError(f"页码必须是正整数: {page!r}")

        with self._lock:
            cursor = self._require_statement()
            start = time.perf_counter()
            self.stats['lookups'] += 1

            query = z_key_transform(code, self.config.z_key_query)
            cache_key = (code, query, page)
            cached = self.cache.get(cache_key)
            if cached is None:
                cached = self._execute(cursor, code, query, page)
                self.cache.put(cache_key, cached)
            # 调用方和事件监听方拿到的是副本，缓存里的结果不会被改动
            result = cached.copy()

            self.stats['total_ms'] += (time.perf_counter() - start) * 1000

        self.events.emit(Signal.CANDIDATE_LIST_UPDATED, code=code, result=result)
        return result

    def _execute(self, cursor: sqlite3.Cursor, code: str, query: str, page: int) -> LookupResult:
        params = self._bindings(code, query, (page - 1) * self.page_size)
        logger.debug(f"查询候选: origin={code}, params={params}")
        try:
            rows = cursor.execute(self._sql, params).fetchall()
        except sqlite3.Error as e:
            logger.error(f"查询失败: origin={code}, 错误: {e}")
            raise StoreUnavailable(f"查询失败: {e}") from e

        candidates = [Candidate(code=row[0], text=row[1], type=row[2]) for row in rows]
        has_next = len(candidates) > self.page_size
        candidates = candidates[:self.page_size]

        if not candidates:
            return LookupResult(
                [Candidate(code=code, text=code, type=TYPE_WUBI)], False, MatchKind.FALLBACK, page
            )
        kind = MatchKind.EXACT if any(c.code == code for c in candidates) else MatchKind.PREFIX
        return LookupResult(candidates, has_next, kind, page)

    # ===== 调频 =====

    def promote(self, code: str, candidate: Candidate) -> bool:
        """把候选插入为该编码的首选；失败返回 False，不影响查询语句"""
        if not code or not candidate.text:
            logger.warning(f"忽略调频: code={code!r}, text={candidate.text!r}")
            return False

        with self._lock:
            try:
                self._insert_first(code, candidate)
            except InsertFailed as e:
                self.stats['promotion_failures'] += 1
                logger.error(f"调频失败: code={code}, text={candidate.text}, 错误: {e}")
                return False
            self.cache.clear()
            self.stats['promotions'] += 1

        logger.info(f"调频成功: {code} -> {candidate.text}")
        return True

    def _insert_first(self, code: str, candidate: Candidate):
        try:
            db = self.store.connection()
        except StoreUnavailable as e:
            raise InsertFailed(str(e)) from e

        sql = QueryBuilder.build_promote(self.scheme)
        try:
            with db:
                db.execute(sql, {"code": code, "text": candidate.text, "type": TYPE_WUBI})
        except sqlite3.Error as e:
            raise InsertFailed(str(e)) from e

    def select(self, code: str, candidate: Candidate, learn: bool = True) -> bool:
        """候选被选中：发出事件，需要时调频"""
        self.events.emit(Signal.CANDIDATE_SELECTED, code=code, candidate=candidate)
        if not learn:
            return False
        return self.promote(code, candidate)

    # ===== 统计 =====

    def get_stats(self) -> Dict:
        lookups = self.stats['lookups'] or 1
        return {
            'scheme': self.scheme.value,
            'page_size': self.page_size,
            'total_lookups': self.stats['lookups'],
            'cache_hit_rate': self.cache.hit_rate,
            'avg_latency_ms': self.stats['total_ms'] / lookups,
            'rebuilds': self.stats['rebuilds'],
            'promotions': self.stats['promotions'],
            'promotion_failures': self.stats['promotion_failures'],
        }
