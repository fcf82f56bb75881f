#!/usr/bin/env python3
"""
filepath: ktp_parser.py

KTPParser turns one OCR engine's free-form text into a structured KTPData record.

  - Preprocesses the raw text into trimmed, non-empty lines.
  - Runs every field strategy (see ktp_field_extractors) over the same lines;
    strategies are pure and independent, so none can stop the others.
  - Computes extraction metrics and reports them through an injected
    OCRLoggerProtocol; telemetry never alters the record.

Why:
  Parsing must be total: any text, including empty or garbage OCR output, yields
  a record whose missing fields are simply None.

Public API:
  - KTPParser.parse(text, confidence, engine, processing_time) -> KTPData
"""
from __future__ import annotations

import json
import logging
from typing import Dict, List, Optional, Sequence

from ktp_data import ExtractionMetrics, KTPData, OCREngine
from ktp_field_extractors import FieldExtractionStrategy, default_extractors, preprocess_text
from ocr_logger import OCRLogger, OCRLoggerProtocol

logger = logging.getLogger(__name__)


class KTPParser:
    """
    Orchestrate field strategies over preprocessed OCR lines and assemble a KTPData.

    Notes:
      • Deterministic: regex and string rules only; the same input always
        produces an equal record.
      • Stateless between calls: one instance may serve both engines concurrently.
    """

    PERFORMANCE_OPERATION = "KTP_Field_Extraction"

    def __init__(
        self,
        *,
        logger: Optional[OCRLoggerProtocol] = None,
        extractors: Optional[Sequence[FieldExtractionStrategy]] = None,
    ):
        """
        Prepare the parser with its telemetry port and strategy list.

        What:
            `logger` defaults to a private OCRLogger; `extractors` defaults to the
            fifteen canonical KTP strategies.

        Why:
            Callers own logger lifecycle (sessions, summaries); tests swap in
            recording loggers or a reduced strategy set.
        """
        self.logger: OCRLoggerProtocol = logger if logger is not None else OCRLogger()
        self.extractors: List[FieldExtractionStrategy] = list(
            extractors if extractors is not None else default_extractors()
        )

    # -----------------------
    # Public API
    # -----------------------
    def parse(
        self,
        text: str,
        confidence: float,
        engine: OCREngine,
        processing_time: float,
        *,
        session_id: Optional[str] = None,
    ) -> KTPData:
        """End-to-end parse: preprocess -> extract all fields -> metrics -> record."""
        self.logger.log_process(
            "Starting KTP data parsing",
            details=f"Engine: {engine.value}, Text length: {len(text)}",
            session_id=session_id,
        )
        operation_id = self.logger.log_performance_start(self.PERFORMANCE_OPERATION, engine, session_id=session_id)

        lines = preprocess_text(text)
        self.logger.log_process(
            "Text preprocessing complete",
            details=f"{len(lines)} lines to process",
            session_id=session_id,
        )

        fields = self.extract_fields(lines, session_id=session_id)
        metrics = self.calculate_metrics(fields, engine, session_id=session_id)

        self.logger.log_performance_end(
            operation_id,
            session_id=session_id,
            result=f"{metrics.success_count}/{metrics.total_count} fields extracted",
        )
        self.logger.log_success(
            "KTP parsing complete",
            details=f"Success rate: {metrics.success_rate * 100:.1f}% ({metrics.success_count}/{metrics.total_count})",
            session_id=session_id,
        )

        return self.assemble(
            fields,
            raw_text=text,
            confidence=confidence,
            engine=engine,
            processing_time=processing_time,
        )

    def extract_fields(self, lines: Sequence[str], *, session_id: Optional[str] = None) -> Dict[str, Optional[str]]:
        """Run every strategy over `lines`; returns field name -> value or None."""
        fields: Dict[str, Optional[str]] = {}
        for extractor in self.extractors:
            value = extractor.extract(lines)
            if value is not None:
                value = value.strip() or None
            fields[extractor.field_name] = value
            self.logger.log_field_extraction(
                extractor.field_name, value, value is not None, session_id=session_id
            )
        return fields

    def calculate_metrics(
        self,
        fields: Dict[str, Optional[str]],
        engine: OCREngine,
        *,
        session_id: Optional[str] = None,
    ) -> ExtractionMetrics:
        metrics = ExtractionMetrics.from_fields(fields)
        self.logger.log_performance_metric("extraction_success_rate", metrics.success_rate, engine, session_id=session_id)
        self.logger.log_performance_metric("extracted_fields_count", float(metrics.success_count), engine, session_id=session_id)
        self.logger.log_performance_metric("total_fields_count", float(metrics.total_count), engine, session_id=session_id)
        return metrics

    @staticmethod
    def assemble(
        fields: Dict[str, Optional[str]],
        *,
        raw_text: str,
        confidence: float,
        engine: OCREngine,
        processing_time: float,
    ) -> KTPData:
        """Copy known field names into a KTPData; unknown names from custom strategies are dropped."""
        known = {name: fields.get(name) for name in KTPData.FIELD_NAMES}
        for name in fields:
            if name not in known:
                logger.debug("Dropping unknown field %r from record", name)
        return KTPData(
            raw_text=raw_text,
            confidence=confidence,
            ocr_engine=engine,
            processing_time=processing_time,
            **known,
        )


# -----------------------
# Example run (manual quick test)
# -----------------------
if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    samples = [
        (
            "PROVINSI DKI JAKARTA\n"
            "KOTA JAKARTA SELATAN\n"
            "NIK: 3174051234567890\n"
            "Nama: BUDI SANTOSO\n"
            "Tempat/Tgl Lahir: JAKARTA, 15-08-1990\n"
            "Jenis Kelamin: LAKI-LAKI\n"
            "Gol. Darah: O\n"
            "Alamat: JL. SUDIRMAN NO. 123\n"
            "RT/RW: 003/005\n"
            "Kel/Desa: KEBAYORAN BARU\n"
            "Kecamatan: KEBAYORAN BARU\n"
            "Agama: ISLAM\n"
            "Status Perkawinan: KAWIN\n"
            "Pekerjaan: KARYAWAN SWASTA\n"
            "Kewarganegaraan: WNI\n"
            "Berlaku Hingga: SEUMUR HIDUP",
            0.95,
            OCREngine.VISION,
        ),
        (
            "NIK\n"
            "3276 5432 1098 7654\n"
            "Nama\n"
            ": DEWI SIRAT\n"
            "Tempat/Tgl Lahir CIHAMPELAS 20-11-1988\n"
            "Jenis Kelamin\n"
            "PEREMPUAN\n"
            "GOL. DARAH: AB\n"
            "RT/RW 002/004\n"
            "KelDesa CIWIDEY\n"
            "KEC: MARGAASIH\n"
            "Status Perkawinan: BELUM KAWIN\n"
            "Kewarganegaraan: WNI\n"
            "Berlaku Hingga\n"
            "15-02-2027",
            0.81,
            OCREngine.MLKIT,
        ),
        ("RANDOM TEXT WITHOUT KTP DATA 12345", 0.5, OCREngine.VISION),
    ]

    parser = KTPParser()
    for text, confidence, engine in samples:
        record = parser.parse(text, confidence, engine, processing_time=0.5)
        print(json.dumps(record.to_dict(), indent=2, ensure_ascii=False))
        metrics = record.metrics
        print(f"fields: {metrics.success_count}/{metrics.total_count} ({metrics.success_rate:.0%})")
        print('-' * 80)
