"""
查询语句构建

每种输入方案对应一份固定模板，只在构建时代入表名、类型标记和每页条数；
查询时只绑定参数，不再拼接 SQL。

绑定参数:
    :code          原始编码（保留给精确匹配，目前模板不引用）
    :query_prefix  前缀匹配模式，如 'ab%'
    :offset        跳过的行数
"""

from dataclasses import dataclass

from .config import InputScheme, TYPE_WUBI, TYPE_PINYIN

# 五笔+拼音混合表：每个 text 取匹配最好（query 最小、id 最小）的那一行作代表
UNIFIED_LOOKUP = """
    select wbcode, text, type, query from (
        select
            wbcode, text, type, query, id,
            row_number() over (partition by text order by query, id) as rn
        from wb_py_dict
        where query like :query_prefix
    )
    where rn = 1
    order by query, id
    limit :offset, {limit}
"""

# 单独的五笔表 / 拼音表
SPLIT_LOOKUP = """
    select code as wbcode, text, '{type}' as type, code as query from (
        select
            code, text, id,
            row_number() over (partition by text order by code, id) as rn
        from {table}
        where code like :query_prefix
    )
    where rn = 1
    order by query, id
    limit :offset, {limit}
"""

UNIFIED_PROMOTE = """
    insert into wb_py_dict(id, wbcode, text, type, query)
    values (
        (select coalesce(min(id), 1) - 1 from wb_py_dict), :code, :text, :type, :code
    )
"""

SPLIT_PROMOTE = """
    insert into {table}(id, code, text)
    values (
        (select coalesce(min(id), 1) - 1 from {table}), :code, :text
    )
"""


@dataclass(frozen=True)
class SchemeLayout:
    """输入方案对应的词库表"""
    table: str
    type: str
    unified: bool = False


LAYOUTS = {
    InputScheme.WUBI: SchemeLayout("wb_dict", TYPE_WUBI),
    InputScheme.PINYIN: SchemeLayout("py_dict", TYPE_PINYIN),
    InputScheme.WUBI_PINYIN: SchemeLayout("wb_py_dict", TYPE_WUBI, unified=True),
}


def layout_for(scheme) -> SchemeLayout:
    return LAYOUTS[InputScheme.parse(scheme)]


class QueryBuilder:
    """根据输入方案和每页数量生成查询语句"""

    @staticmethod
    def build(scheme, page_size: int) -> str:
        if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size < 1:
            raise ValueError(f"每页数量必须是正整数: {page_size!r}")
        layout = layout_for(scheme)
        # 比显示的候选数多查一个，用来判断有没有下一页
        limit = page_size + 1
        if layout.unified:
            return UNIFIED_LOOKUP.format(limit=limit)
        return SPLIT_LOOKUP.format(table=layout.table, type=layout.type, limit=limit)

    @staticmethod
    def build_promote(scheme) -> str:
        layout = layout_for(scheme)
        if layout.unified:
            return UNIFIED_PROMOTE
        return SPLIT_PROMOTE.format(table=layout.table)
