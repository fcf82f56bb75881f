"""
filepath: ocr_repository.py

Bridge between OCR engine services and KTPParser.

What:
  - `OCRService` is the narrow contract of an engine: image in,
    `(text, confidence, processing_time)` out. Image handling stays in the service.
  - `OCRRepository` maps engine failures to the `OCRError` family, parses a
    single engine's output, or runs both engines concurrently and returns an
    `OCRComparisonResult`.

Why:
  Real failures (missing engine, timeout, unreadable image) live here, so the
  parser itself can stay total and never see them.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Tuple

from ktp_data import KTPData, OCREngine
from ktp_parser import KTPParser
from ocr_comparison import OCRComparisonResult
from ocr_logger import OCRLogger, OCRLoggerProtocol

logger = logging.getLogger(__name__)


# ----------------------------
# Errors
# ----------------------------
class OCRError(Exception):
    """Base class for failures of the OCR step (never raised by the parser)."""


class EngineUnavailableError(OCRError):
    def __init__(self, engine: OCREngine):
        self.engine = engine
        super().__init__(f"{engine.value} is not available")


class ProcessingFailedError(OCRError):
    def __init__(self, message: str):
        self.reason = message
        super().__init__(f"OCR processing failed: {message}")


class NoTextDetectedError(OCRError):
    def __init__(self) -> None:
        super().__init__("No text detected in image")


class InvalidImageError(OCRError):
    def __init__(self) -> None:
        super().__init__("Invalid or corrupted image")


class OCRTimeoutError(OCRError):
    def __init__(self) -> None:
        super().__init__("OCR processing timeout")


# ----------------------------
# Models
# ----------------------------
@dataclass(frozen=True)
class OCRResult:
    """Raw output of one engine for one image."""
    text: str
    confidence: float
    processing_time: float
    engine: OCREngine


class OCRService(Protocol):
    def recognize_text(self, image: Any, session_id: Optional[str] = None) -> Tuple[str, float, float]: ...


# ----------------------------
# Repository
# ----------------------------
class OCRRepository:
    """
    Run OCR engines and feed their text through KTPParser.

    Notes:
      • `mlkit_service=None` means single-engine mode: comparison runs Vision only
        and propagates its error.
      • With both engines, each runs on its own worker thread and is parsed
        independently; one engine failing leaves its slot empty.
    """

    def __init__(
        self,
        vision_service: OCRService,
        mlkit_service: Optional[OCRService] = None,
        *,
        parser: Optional[KTPParser] = None,
        logger: Optional[OCRLoggerProtocol] = None,
        timeout: Optional[float] = None,
    ):
        """
        Args:
            vision_service: Service for OCREngine.VISION (always required).
            mlkit_service: Service for OCREngine.MLKIT, or None when unavailable.
            parser: Shared KTPParser; defaults to one reporting into `logger`.
            logger: Telemetry port; defaults to a fresh OCRLogger.
            timeout: Seconds to wait for each engine in comparison mode (None waits forever).
        """
        self.logger: OCRLoggerProtocol = logger if logger is not None else OCRLogger()
        self.parser = parser if parser is not None else KTPParser(logger=self.logger)
        self.timeout = timeout
        self._services: Dict[OCREngine, Optional[OCRService]] = {
            OCREngine.VISION: vision_service,
            OCREngine.MLKIT: mlkit_service,
        }

    # -----------------------
    # Single engine
    # -----------------------
    def recognize_text(self, image: Any, engine: OCREngine, session_id: Optional[str] = None) -> OCRResult:
        """Run one engine; raise an OCRError subclass on any failure."""
        service = self._services.get(engine)
        if service is None:
            raise EngineUnavailableError(engine)

        try:
            text, confidence, processing_time = service.recognize_text(image, session_id=session_id)
        except OCRError:
            raise
        except (TimeoutError, FutureTimeoutError) as exc:
            raise OCRTimeoutError() from exc
        except Exception as exc:
            raise ProcessingFailedError(str(exc)) from exc

        self.logger.log_text_extraction(engine, len(text), confidence, session_id=session_id)
        return OCRResult(text=text, confidence=confidence, processing_time=processing_time, engine=engine)

    def process_image(self, image: Any, engine: OCREngine, session_id: Optional[str] = None) -> KTPData:
        """Recognize with one engine and parse its text into a KTPData."""
        self.logger.log_process(f"Starting KTP processing with {engine.value}", session_id=session_id)
        try:
            result = self.recognize_text(image, engine, session_id=session_id)
        except OCRError as exc:
            self.logger.log_error("KTP processing failed", error=exc, session_id=session_id)
            raise

        data = self._parse(result, session_id)
        self.logger.log_success("KTP processing complete", session_id=session_id)
        return data

    # -----------------------
    # Both engines
    # -----------------------
    def process_with_comparison(self, image: Any, session_id: Optional[str] = None) -> OCRComparisonResult:
        """Run every available engine on `image` and return both parsed records."""
        self.logger.log_process("Starting dual-engine KTP processing", session_id=session_id)

        if self._services[OCREngine.MLKIT] is None:
            result = self.recognize_text(image, OCREngine.VISION, session_id=session_id)
            comparison = OCRComparisonResult(
                vision_result=self._parse(result, session_id),
                vision_time=result.processing_time,
            )
            self.logger.log_success("Dual-engine processing complete", details="Vision only", session_id=session_id)
            return comparison

        pool = ThreadPoolExecutor(max_workers=2, thread_name_prefix="ocr-engine")
        results: Dict[OCREngine, Optional[OCRResult]] = {}
        try:
            futures = {
                engine: pool.submit(self.recognize_text, image, engine, session_id)
                for engine in (OCREngine.VISION, OCREngine.MLKIT)
            }
            for engine, future in futures.items():
                try:
                    results[engine] = future.result(timeout=self.timeout)
                except FutureTimeoutError:
                    self.logger.log_warning(f"{engine.value} skipped", details=str(OCRTimeoutError()), session_id=session_id)
                    results[engine] = None
                except OCRError as exc:
                    self.logger.log_warning(f"{engine.value} skipped", details=str(exc), session_id=session_id)
                    results[engine] = None
        finally:
            # a timed-out engine keeps its worker; do not block on it
            pool.shutdown(wait=False, cancel_futures=True)

        vision = results[OCREngine.VISION]
        mlkit = results[OCREngine.MLKIT]
        comparison = OCRComparisonResult(
            vision_result=self._parse(vision, session_id) if vision else None,
            mlkit_result=self._parse(mlkit, session_id) if mlkit else None,
            vision_time=vision.processing_time if vision else 0.0,
            mlkit_time=mlkit.processing_time if mlkit else 0.0,
        )

        best = comparison.best_result
        logger.debug(
            "Comparison done: both=%s best=%s",
            comparison.has_both_results,
            best.ocr_engine.value if best else None,
        )
        self.logger.log_success("Dual-engine processing complete", session_id=session_id)
        return comparison

    def _parse(self, result: OCRResult, session_id: Optional[str]) -> KTPData:
        return self.parser.parse(
            result.text,
            result.confidence,
            result.engine,
            result.processing_time,
            session_id=session_id,
        )
