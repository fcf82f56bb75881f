# ktp_data.py

from __future__ import annotations

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Mapping, Optional


# ----------------------------
# Engine identifier
# ----------------------------
class OCREngine(str, Enum):
    """Closed set of OCR engines whose output can be fed to the parser."""
    VISION = "Apple Vision"
    MLKIT = "Google MLKit"


# ----------------------------
# Metrics
# ----------------------------
@dataclass(frozen=True)
class ExtractionMetrics:
    """Derived extraction statistics for one parse.

    What:
        `success_count` is the number of fields with a present value,
        `total_count` the number of strategies that ran.

    Why:
        Kept separate from the record so it is always recomputed from the
        values, never stored next to them and left to drift.
    """
    success_count: int
    total_count: int

    @property
    def success_rate(self) -> float:
        if not self.total_count:
            return 0.0
        return self.success_count / self.total_count

    @classmethod
    def from_fields(cls, values: Mapping[str, Optional[str]]) -> "ExtractionMetrics":
        """Count present values in a field-name -> value mapping."""
        success = sum(1 for v in values.values() if v is not None)
        return cls(success_count=success, total_count=len(values))


# ----------------------------
# Record
# ----------------------------
@dataclass(frozen=True)
class KTPData:
    """Structured KTP record assembled from one OCR invocation.

    What:
        Fifteen optional text fields plus passthrough metadata (`raw_text`,
        `confidence`, `ocr_engine`, `processing_time`).

    Why:
        A frozen value object lets UI and comparison code share records across
        threads without copying, and equality doubles as the idempotence check.

    Invariants (checked on construction):
        • every present field is non-empty and whitespace-trimmed,
        • 0.0 <= confidence <= 1.0,
        • processing_time >= 0.
    """
    raw_text: str
    confidence: float
    ocr_engine: OCREngine
    processing_time: float
    nik: Optional[str] = None
    nama: Optional[str] = None
    tempat_lahir: Optional[str] = None
    tanggal_lahir: Optional[str] = None
    jenis_kelamin: Optional[str] = None
    alamat: Optional[str] = None
    rt_rw: Optional[str] = None
    kelurahan: Optional[str] = None
    kecamatan: Optional[str] = None
    agama: Optional[str] = None
    status_perkawinan: Optional[str] = None
    pekerjaan: Optional[str] = None
    kewarganegaraan: Optional[str] = None
    berlaku_hingga: Optional[str] = None
    golongan_darah: Optional[str] = None

    FIELD_NAMES = (
        "nik", "nama", "tempat_lahir", "tanggal_lahir", "jenis_kelamin",
        "alamat", "rt_rw", "kelurahan", "kecamatan", "agama",
        "status_perkawinan", "pekerjaan", "kewarganegaraan",
        "berlaku_hingga", "golongan_darah",
    )

    def __post_init__(self) -> None:
        if not isinstance(self.raw_text, str):
            raise ValueError("raw_text must be a string")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence!r}")
        if self.processing_time < 0:
            raise ValueError(f"processing_time must be non-negative, got {self.processing_time!r}")
        # accept raw strings for the engine so records rebuilt from dicts stay valid
        if not isinstance(self.ocr_engine, OCREngine):
            object.__setattr__(self, "ocr_engine", OCREngine(self.ocr_engine))
        for name in self.FIELD_NAMES:
            value = getattr(self, name)
            if value is None:
                continue
            if not value or value != value.strip():
                raise ValueError(f"field {name!r} must be a non-empty trimmed string, got {value!r}")

    def fields(self) -> Dict[str, Optional[str]]:
        """Return the fifteen extracted fields in canonical order."""
        return {name: getattr(self, name) for name in self.FIELD_NAMES}

    @property
    def metrics(self) -> ExtractionMetrics:
        return ExtractionMetrics.from_fields(self.fields())

    def to_dict(self) -> Dict[str, Any]:
        """Expose a JSON-serializable mapping for APIs, logs, or tests.

        Returns:
            Dict[str, Any]: every dataclass field, with the engine as its string value.
        """
        out = asdict(self)
        out["ocr_engine"] = self.ocr_engine.value
        return out
