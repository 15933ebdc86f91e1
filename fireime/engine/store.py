"""
词库存储

sqlite 词库的打开、关闭、建表和批量导入。
表结构需要与已有词库文件保持一致：
    wb_dict(id INTEGER, code TEXT, text TEXT)
    py_dict(id INTEGER, code TEXT, text TEXT)
    wb_py_dict(id INTEGER, wbcode TEXT, text TEXT, type TEXT, query TEXT)
"""

import sqlite3
from pathlib import Path
from typing import Iterable, Optional, Tuple

from .errors import StoreUnavailable
from .query import layout_for
from .logging import get_engine_logger

logger = get_engine_logger()

SCHEMA = """
CREATE TABLE IF NOT EXISTS wb_dict (id INTEGER, code TEXT, text TEXT);
CREATE TABLE IF NOT EXISTS py_dict (id INTEGER, code TEXT, text TEXT);
CREATE TABLE IF NOT EXISTS wb_py_dict (id INTEGER, wbcode TEXT, text TEXT, type TEXT, query TEXT);
CREATE INDEX IF NOT EXISTS idx_wb_dict_code ON wb_dict(code);
CREATE INDEX IF NOT EXISTS idx_py_dict_code ON py_dict(code);
CREATE INDEX IF NOT EXISTS idx_wb_py_dict_query ON wb_py_dict(query);
"""

TABLES = ("wb_dict", "py_dict", "wb_py_dict")


class LexiconStore:
    """
    词库句柄

    状态: 关闭 -> 打开 -> 关闭。close() 可重复调用，未打开时调用也安全。
    """

    def __init__(self, path: str, create: bool = False):
        self.path = str(path)
        self.create = create
        self.db: Optional[sqlite3.Connection] = None

    @property
    def is_open(self) -> bool:
        return self.db is not None

    def open(self) -> "LexiconStore":
        if self.db is not None:
            return self
        if self.create:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        mode = "rwc" if self.create else "rw"
        uri = f"{Path(self.path).absolute().as_uri()}?mode={mode}"
        try:
            # 访问由 LookupSession 的锁串行化
            self.db = sqlite3.connect(uri, uri=True, check_same_thread=False)
            self.db.execute('PRAGMA encoding = "UTF-8";')
            if self.create:
                self.create_schema()
        except sqlite3.Error as e:
            if self.db is not None:
                self.db.close()
                self.db = None
            logger.error(f"词库打开失败: {self.path}, 错误: {e}")
            raise StoreUnavailable(f"无法打开词库 {self.path}: {e}") from e
        logger.info(f"词库已打开: {self.path}")
        return self

    def close(self):
        if self.db is None:
            return
        self.db.close()
        self.db = None
        logger.info(f"词库已关闭: {self.path}")

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def connection(self) -> sqlite3.Connection:
        if self.db is None:
            raise StoreUnavailable(f"词库未打开: {self.path}")
        return self.db

    def create_schema(self):
        db = self.connection()
        db.executescript(SCHEMA)
        db.commit()

    def count(self, table: str) -> int:
        if table not in TABLES:
            raise ValueError(f"未知词库表: {table}")
        return self.connection().execute(f"select count(*) from {table}").fetchone()[0]

    def import_rows(self, scheme, rows: Iterable[Tuple[str, ...]]) -> int:
        """
        批量导入词条，id 接在当前最大 id 之后递增

        Args:
            scheme: 输入方案，决定写入哪张表
            rows: 五笔/拼音表为 (code, text)；混合表为 (wbcode, text, type, query)，
                  query 省略时与 wbcode 相同，type 省略时为 'wb'

        Returns:
            导入条数
        """
        db = self.connection()
        layout = layout_for(scheme)
        next_id = db.execute(
            f"select coalesce(max(id), 0) + 1 from {layout.table}"
        ).fetchone()[0]

        records = []
        for row in rows:
            if layout.unified:
                wbcode, text = row[0], row[1]
                type_ = row[2] if len(row) > 2 and row[2] else layout.type
                query = row[3] if len(row) > 3 and row[3] else wbcode
                records.append((next_id, wbcode, text, type_, query))
            else:
                records.append((next_id, row[0], row[1]))
            next_id += 1

        if layout.unified:
            sql = "insert into wb_py_dict(id, wbcode, text, type, query) values (?, ?, ?, ?, ?)"
        else:
            sql = f"insert into {layout.table}(id, code, text) values (?, ?, ?)"
        with db:
            db.executemany(sql, records)
        logger.info(f"导入 {len(records)} 条词条到 {layout.table}")
        return len(records)


def read_table_file(path: str) -> Iterable[Tuple[str, ...]]:
    """
    读取码表文本：每行 `编码<TAB>词条[<TAB>类型[<TAB>查询码]]`，
    也接受空格分隔；# 开头的行为注释
    """
    with open(path, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            parts = line.split('\t') if '\t' in line else line.split()
            if len(parts) < 2:
                logger.warning(f"跳过格式错误的行: {line!r}")
                continue
            yield tuple(parts)