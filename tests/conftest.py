"""
测试公共夹具：每个测试使用 tmp_path 下的独立词库
"""
import os
import sqlite3

os.environ.setdefault("FIREIME_LOG_TO_FILE", "0")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from fireime.engine import EngineConfig, LexiconStore, LookupSession


def build_db(path, wb=(), py=(), unified=()):
    """
    创建测试词库

    wb / py: [(id, code, text)]
    unified: [(id, wbcode, text, type, query)]
    """
    with LexiconStore(path, create=True) as store:
        db = store.connection()
        with db:
            db.executemany("insert into wb_dict(id, code, text) values (?, ?, ?)", wb)
            db.executemany("insert into py_dict(id, code, text) values (?, ?, ?)", py)
            db.executemany(
                "insert into wb_py_dict(id, wbcode, text, type, query) values (?, ?, ?, ?, ?)",
                unified,
            )
    return str(path)


def fetch_rows(path, table):
    db = sqlite3.connect(str(path))
    try:
        return db.execute(f"select * from {table} order by id").fetchall()
    finally:
        db.close()


WB_ROWS = [
    (1, "a", "工"),
    (2, "aa", "式"),
    (3, "ab", "节"),
    (4, "ac", "芭"),
    (5, "ad", "基"),
    (6, "aaaa", "工"),
    (7, "b", "了"),
]

PY_ROWS = [
    (1, "wo", "我"),
    (2, "wo", "窝"),
    (3, "women", "我们"),
    (4, "wu", "五"),
    (5, "zhong", "中"),
    (6, "zha", "扎"),
]

UNIFIED_ROWS = [
    (1, "trnt", "我", "wb", "trnt"),
    (2, "wo", "我", "py", "wo"),
    (3, "wo", "窝", "py", "wo"),
    (4, "gg", "五", "wb", "gg"),
    (5, "wu", "五", "py", "wu"),
]


@pytest.fixture
def db_factory(tmp_path):
    """在 tmp_path 下按名称创建词库"""
    def factory(name="custom.sqlite", **rows):
        return build_db(tmp_path / name, **rows)
    return factory


@pytest.fixture
def rows_of():
    return fetch_rows


@pytest.fixture
def db_path(tmp_path):
    return build_db(tmp_path / "table.sqlite", wb=WB_ROWS, py=PY_ROWS, unified=UNIFIED_ROWS)


@pytest.fixture
def make_session(db_path):
    """按方案创建已打开的会话，测试结束时关闭"""
    sessions = []

    def factory(code_mode="wubi", candidate_count=5, z_key_query=True, path=None):
        config = EngineConfig(
            code_mode=code_mode,
            candidate_count=candidate_count,
            z_key_query=z_key_query,
            db_path=path or db_path,
        )
        session = LookupSession(LexiconStore(config.db_path), config).open()
        sessions.append(session)
        return session

    yield factory
    for session in sessions:
        session.close()
