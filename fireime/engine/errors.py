"""
引擎错误类型

- StoreUnavailable: 词库打不开 / 已关闭，之后的查询全部失败，直到重新打开
- StatementPrepareFailed: 当前方案的查询语句编译失败（配置或词库结构问题）
- InsertFailed: 调频写入被拒绝，只以 False 形式报告给调用方
"""


class FireError(Exception):
    """所有引擎错误的基类"""


class StoreUnavailable(FireError):
    """词库不可用"""


class StatementPrepareFailed(FireError):
    """查询语句准备失败"""


class InsertFailed(FireError):
    """调频插入失败"""
