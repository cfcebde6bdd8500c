# agent_gateway/agentic/orchestration/trace.py
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List

from agent_gateway.logger import get_logger

logger = get_logger(__name__)


@dataclass
class TraceEvent:
    ts: str
    type: str
    payload: Dict[str, Any]


class TraceRecorder:
    '''
    单轮内的结构化事件流（面向运维/调试，不进入用户可见的对话记录）。
    并发工具调用会同时 emit，用锁保护。
    '''

    def __init__(self):
        self.events: List[TraceEvent] = []
        self._lock = threading.Lock()

    def emit(self, type_: str, **payload):
        '''
        Record a trace event.
        param:
        type_: str - The type of the event.
        payload: Dict[str, Any] - Additional data for the event.
        '''
        with self._lock:
            self.events.append(TraceEvent(ts=datetime.now().isoformat(), type=type_, payload=payload))

    def of_type(self, type_: str) -> List[TraceEvent]:
        with self._lock:
            return [e for e in self.events if e.type == type_]

    def dump(self):
        '''
        Write all recorded trace events to the log.
        '''
        with self._lock:
            events = list(self.events)
        for e in events:
            logger.info("[%s] %s: %s", e.ts, e.type, e.payload)
