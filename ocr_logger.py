# ocr_logger.py

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from ktp_data import OCREngine

logger = logging.getLogger(__name__)


# ----------------------------
# Port
# ----------------------------
class OCRLoggerProtocol(Protocol):
    """Telemetry port the parser and repository report into.

    Calls are side-channel only: implementations must not change what the
    caller returns.
    """

    def log_process(self, message: str, details: Optional[str] = None, session_id: Optional[str] = None) -> None: ...

    def log_success(self, message: str, details: Optional[str] = None, session_id: Optional[str] = None) -> None: ...

    def log_warning(self, message: str, details: Optional[str] = None, session_id: Optional[str] = None) -> None: ...

    def log_error(self, message: str, error: Optional[BaseException] = None, session_id: Optional[str] = None) -> None: ...

    def log_performance_start(self, operation: str, engine: OCREngine, session_id: Optional[str] = None) -> str: ...

    def log_performance_end(self, operation_id: str, session_id: Optional[str] = None, result: Optional[str] = None) -> None: ...

    def log_performance_metric(self, name: str, value: float, engine: OCREngine, session_id: Optional[str] = None) -> None: ...

    def log_text_extraction(self, engine: OCREngine, text_length: int, confidence: float, session_id: Optional[str] = None) -> None: ...

    def log_field_extraction(self, field_name: str, value: Optional[str], success: bool, session_id: Optional[str] = None) -> None: ...


# ----------------------------
# Models
# ----------------------------
@dataclass
class PerformanceOperation:
    operation_id: str
    name: str
    engine: OCREngine
    start_time: float
    end_time: Optional[float] = None
    duration: Optional[float] = None
    result: Optional[str] = None


@dataclass
class OCRSession:
    session_id: str
    start_time: float
    operations: Dict[str, PerformanceOperation] = field(default_factory=dict)
    metrics: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class OCRSessionSummary:
    """Per-session rollup: wall time, per-engine processing time, metrics."""
    session_id: str
    total_duration: float
    vision_processing_time: float
    mlkit_processing_time: float
    operations_count: int
    metrics: Dict[str, float]


# ----------------------------
# Implementation
# ----------------------------
class OCRLogger:
    """
    `OCRLoggerProtocol` on top of stdlib logging, with optional session state.

    What:
        Writes process/field messages to the `ocr_logger.ocr` logger and timers
        and metrics to `ocr_logger.performance`. Operations and metrics started
        under a session id are also recorded on that session so a summary can be
        produced when the caller ends it.

    Why:
        The caller owns the instance and its sessions; two OCR engines
        reporting concurrently share it safely through one lock.
    """

    DEFAULT_SETTINGS: Dict[str, Any] = {
        "value_preview_chars": 20,
        "result_preview_chars": 50,
    }

    def __init__(self, *, settings: Optional[Dict[str, Any]] = None):
        self.settings = {**self.DEFAULT_SETTINGS, **(settings or {})}
        self._log = logger.getChild("ocr")
        self._perf = logger.getChild("performance")
        self._lock = threading.Lock()
        self._sessions: Dict[str, OCRSession] = {}
        # start times for every open timer, session or not
        self._pending: Dict[str, PerformanceOperation] = {}

    # -----------------------
    # Sessions
    # -----------------------
    def start_session(self) -> str:
        session_id = str(uuid.uuid4())
        with self._lock:
            self._sessions[session_id] = OCRSession(session_id=session_id, start_time=time.perf_counter())
        self._log.info("Started OCR session: %s", session_id)
        return session_id

    def end_session(self, session_id: str) -> Optional[OCRSessionSummary]:
        """Close a session and return its final summary (None for unknown ids)."""
        summary = self.get_session_summary(session_id)
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return None
        self._log.info("Ended OCR session: %s - Total time: %.3fs", session_id, summary.total_duration)
        return summary

    def get_session(self, session_id: str) -> Optional[OCRSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def get_session_summary(self, session_id: str) -> Optional[OCRSessionSummary]:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            operations: List[PerformanceOperation] = list(session.operations.values())
            metrics = dict(session.metrics)
            started = session.start_time

        def engine_time(engine: OCREngine) -> float:
            return sum(op.duration or 0.0 for op in operations if op.engine is engine)

        return OCRSessionSummary(
            session_id=session_id,
            total_duration=time.perf_counter() - started,
            vision_processing_time=engine_time(OCREngine.VISION),
            mlkit_processing_time=engine_time(OCREngine.MLKIT),
            operations_count=len(operations),
            metrics=metrics,
        )

    def log_session_summary(self, session_id: str) -> None:
        summary = self.get_session_summary(session_id)
        if summary is None:
            return
        self._log.info("Session Summary (%s):", session_id)
        self._log.info("   Total Duration: %.3fs", summary.total_duration)
        self._log.info("   Vision Processing: %.3fs", summary.vision_processing_time)
        self._log.info("   MLKit Processing: %.3fs", summary.mlkit_processing_time)
        self._log.info("   Operations: %d", summary.operations_count)
        for name, value in sorted(summary.metrics.items()):
            self._log.info("   %s: %.3f", name, value)

    # -----------------------
    # Performance
    # -----------------------
    def log_performance_start(self, operation: str, engine: OCREngine, session_id: Optional[str] = None) -> str:
        operation_id = str(uuid.uuid4())
        op = PerformanceOperation(operation_id=operation_id, name=operation, engine=engine, start_time=time.perf_counter())
        self._perf.info("START [%s] %s - ID: %s", engine.value, operation, operation_id)
        with self._lock:
            self._pending[operation_id] = op
            session = self._sessions.get(session_id) if session_id else None
            if session is not None:
                session.operations[operation_id] = op
        return operation_id

    def log_performance_end(self, operation_id: str, session_id: Optional[str] = None, result: Optional[str] = None) -> None:
        end = time.perf_counter()
        with self._lock:
            op = self._pending.pop(operation_id, None)
            if op is None:
                return
            op.end_time = end
            op.duration = end - op.start_time
            op.result = result
            session = self._sessions.get(session_id) if session_id else None
            if session is not None:
                session.operations[operation_id] = op

        self._perf.info("END [%s] %s - Duration: %.3fs", op.engine.value, op.name, op.duration)
        if result is not None:
            self._perf.debug("Result preview: %s", result[: self.settings["result_preview_chars"]])

    def log_performance_metric(self, name: str, value: float, engine: OCREngine, session_id: Optional[str] = None) -> None:
        self._perf.info("[%s] %s: %.3f", engine.value, name, value)
        if not session_id:
            return
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                session.metrics[f"{engine.value}_{name}"] = float(value)

    # -----------------------
    # Messages
    # -----------------------
    def log_process(self, message: str, details: Optional[str] = None, session_id: Optional[str] = None) -> None:
        self._log.info("%s", self._join(message, details))

    def log_success(self, message: str, details: Optional[str] = None, session_id: Optional[str] = None) -> None:
        self._log.info("%s", self._join(message, details))

    def log_warning(self, message: str, details: Optional[str] = None, session_id: Optional[str] = None) -> None:
        self._log.warning("%s", self._join(message, details))

    def log_error(self, message: str, error: Optional[BaseException] = None, session_id: Optional[str] = None) -> None:
        if error is None:
            self._log.error("%s", message)
        else:
            self._log.error("%s - Error: %s", message, error)

    def log_text_extraction(self, engine: OCREngine, text_length: int, confidence: float, session_id: Optional[str] = None) -> None:
        self._log.info("[%s] Text extracted - Length: %d chars, Confidence: %.1f%%", engine.value, text_length, confidence * 100)

    def log_field_extraction(self, field_name: str, value: Optional[str], success: bool, session_id: Optional[str] = None) -> None:
        preview = value[: self.settings["value_preview_chars"]] if value is not None else "None"
        self._log.debug("%s Field '%s': %s", "OK" if success else "MISS", field_name, preview)

    @staticmethod
    def _join(message: str, details: Optional[str]) -> str:
        return f"{message} - {details}" if details else message
