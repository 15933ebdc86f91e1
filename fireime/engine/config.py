import os
from dataclasses import dataclass, field, asdict, replace
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional

import orjson

# 候选类型标记
TYPE_WUBI = "wb"
TYPE_PINYIN = "py"


class InputScheme(str, Enum):
    """输入方案（取值与偏好设置里的 codeMode 一致）"""
    WUBI = "wubi"
    PINYIN = "pinyin"
    WUBI_PINYIN = "wubiPinyin"

    @classmethod
    def parse(cls, value) -> "InputScheme":
        if isinstance(value, cls):
            return value
        for scheme in cls:
            if value == scheme.value or value == scheme.name:
                return scheme
        raise ValueError(f"未知输入方案: {value!r}")


def default_db_path() -> str:
    """词库默认位置"""
    return os.getenv("FIREIME_DB", str(Path.home() / ".fireime" / "table.sqlite"))


@dataclass
class EngineConfig:
    """引擎配置"""
    code_mode: InputScheme = InputScheme.WUBI_PINYIN
    candidate_count: int = 5
    z_key_query: bool = True    # z 键万能查询
    db_path: str = field(default_factory=default_db_path)
    cache_size: int = 256
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_json: bool = False      # 日志输出为 JSON

    def __post_init__(self):
        self.code_mode = InputScheme.parse(self.code_mode)

    def validate(self) -> "EngineConfig":
        count = self.candidate_count
        if isinstance(count, bool) or not isinstance(count, int) or count < 1:
            raise ValueError(f"候选数量必须是正整数: {self.candidate_count!r}")
        return self


@dataclass(frozen=True)
class Candidate:
    """候选词"""
    code: str
    text: str
    type: str = TYPE_WUBI


class MatchKind(str, Enum):
    """查询结果类别"""
    EXACT = "exact"        # 有候选的编码与输入完全一致
    PREFIX = "prefix"      # 只有前缀匹配
    FALLBACK = "fallback"  # 无匹配，回退为原始输入
    EMPTY = "empty"        # 空输入，未查询


@dataclass
class LookupResult:
    """查询结果，可直接解包为 (candidates, has_next)"""
    candidates: List[Candidate] = field(default_factory=list)
    has_next: bool = False
    kind: MatchKind = MatchKind.PREFIX
    page: int = 1

    def __iter__(self):
        yield self.candidates
        yield self.has_next

    def copy(self) -> "LookupResult":
        return replace(self, candidates=list(self.candidates))

    @property
    def is_fallback(self) -> bool:
        return self.kind is MatchKind.FALLBACK


# ===== 偏好设置 =====

# 偏好键 -> EngineConfig 字段
PREFERENCE_KEYS = {
    "codeMode": "code_mode",
    "candidateCount": "candidate_count",
    "zKeyQuery": "z_key_query",
}

# 变化后需要重建查询语句的键
REBUILD_KEYS = ("codeMode", "candidateCount")


class Preferences:
    """
    偏好设置

    保存/加载 JSON 偏好文件；只有 codeMode 或 candidateCount 真正变化时
    才通知订阅者（zKeyQuery 每次查询时读取，不需要重建）。
    """

    def __init__(self, config: EngineConfig = None, path: Optional[str] = None):
        self.config = config or EngineConfig()
        self.path = path
        self._observers: List[Callable[[EngineConfig], None]] = []

    @classmethod
    def load(cls, path: str, config: EngineConfig = None) -> "Preferences":
        prefs = cls(config, path)
        if os.path.exists(path):
            with open(path, 'rb') as f:
                data = orjson.loads(f.read())
            prefs._apply(data)
        return prefs

    def save(self, path: Optional[str] = None):
        path = path or self.path
        if not path:
            raise ValueError("未指定偏好文件路径")
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'wb') as f:
            f.write(orjson.dumps(self.to_dict(), option=orjson.OPT_INDENT_2))

    def to_dict(self) -> Dict:
        return {
            "codeMode": self.config.code_mode.value,
            "candidateCount": self.config.candidate_count,
            "zKeyQuery": self.config.z_key_query,
        }

    def subscribe(self, callback: Callable[[EngineConfig], None]) -> Callable[[], None]:
        """订阅变化，返回取消订阅函数"""
        self._observers.append(callback)
        return lambda: self._observers.remove(callback)

    def update(self, **changes) -> bool:
        """
        更新偏好（键名使用 codeMode / candidateCount / zKeyQuery）

        订阅者抛错时回滚到原来的值并再次通知，让订阅者恢复到原状态，
        然后把原错误抛给调用方。

        Returns:
            是否通知了订阅者
        """
        before = self.to_dict()
        self._apply(changes)
        after = self.to_dict()

        changed = [k for k in REBUILD_KEYS if before[k] != after[k]]
        if not changed:
            return False
        try:
            self._notify()
        except Exception:
            self._apply(before)
            self._notify()
            raise
        return True

    def _notify(self):
        for callback in list(self._observers):
            callback(self.config)

    def _apply(self, data: Dict):
        values = asdict(self.config)
        for key, value in data.items():
            if key not in PREFERENCE_KEYS:
                raise ValueError(f"未知偏好键: {key}")
            values[PREFERENCE_KEYS[key]] = value
        # 先校验再落地，失败时保持原配置
        config = EngineConfig(**values).validate()
        self.config.code_mode = config.code_mode
        self.config.candidate_count = config.candidate_count
        self.config.z_key_query = bool(config.z_key_query)
