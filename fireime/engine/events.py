"""
候选事件

核心只发出两类信号：候选被选中、候选列表更新。
翻页信号由界面层自己处理，核心只接受 page 参数。
"""

from enum import Enum
from typing import Any, Callable, Dict, List

from .logging import get_engine_logger

logger = get_engine_logger()


class Signal(str, Enum):
    CANDIDATE_SELECTED = "candidateSelected"
    CANDIDATE_LIST_UPDATED = "candidateListUpdated"


EventHandler = Callable[[Dict[str, Any]], None]


class EventBus:
    """简单的同步事件分发"""

    def __init__(self):
        self._handlers: Dict[Signal, List[EventHandler]] = {s: [] for s in Signal}

    def on(self, signal: Signal, handler: EventHandler) -> Callable[[], None]:
        self._handlers[signal].append(handler)
        return lambda: self._handlers[signal].remove(handler)

    def emit(self, signal: Signal, **payload):
        for handler in list(self._handlers[signal]):
            try:
                handler(payload)
            except Exception:
                # 监听方的错误不能影响查询
                logger.exception(f"事件处理失败: {signal.value}")
