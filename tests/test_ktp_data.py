"""
Tests for the KTPData record and ExtractionMetrics.
"""

import dataclasses
import json

import pytest

from ktp_data import ExtractionMetrics, KTPData, OCREngine


def make_record(**overrides):
    values = dict(raw_text="raw", confidence=0.9, ocr_engine=OCREngine.VISION, processing_time=0.2)
    values.update(overrides)
    return KTPData(**values)


class TestValidation:
    """Construction-time invariants."""

    @pytest.mark.parametrize("confidence", [-0.01, 1.01])
    def test_confidence_out_of_range(self, confidence):
        """Confidence must stay within [0, 1]."""
        with pytest.raises(ValueError):
            make_record(confidence=confidence)

    @pytest.mark.parametrize("confidence", [0.0, 1.0])
    def test_confidence_bounds_accepted(self, confidence):
        """Both ends of the range are valid."""
        assert make_record(confidence=confidence).confidence == confidence

    def test_negative_processing_time(self):
        """Processing time cannot be negative."""
        with pytest.raises(ValueError):
            make_record(processing_time=-0.1)

    @pytest.mark.parametrize("value", ["", " BUDI", "BUDI ", "\tBUDI"])
    def test_untrimmed_or_empty_field(self, value):
        """Present fields must be non-empty and trimmed."""
        with pytest.raises(ValueError):
            make_record(nama=value)

    def test_engine_from_string(self):
        """An engine given by its display name becomes the enum member."""
        assert make_record(ocr_engine="Google MLKit").ocr_engine is OCREngine.MLKIT

    def test_unknown_engine(self):
        """Names outside the closed set are rejected."""
        with pytest.raises(ValueError):
            make_record(ocr_engine="Tesseract")

    def test_frozen(self):
        """Records are immutable."""
        record = make_record()
        with pytest.raises(dataclasses.FrozenInstanceError):
            record.nama = "X"


class TestAccessors:
    """fields(), metrics and to_dict()."""

    def test_fields_in_canonical_order(self):
        """fields() lists every field name once, in order."""
        record = make_record(nik="3174051234567890")
        assert tuple(record.fields()) == KTPData.FIELD_NAMES
        assert record.fields()["nik"] == "3174051234567890"

    def test_metrics_counts_present_fields(self):
        """Three present fields out of fifteen."""
        metrics = make_record(nama="BUDI", agama="ISLAM", golongan_darah="-").metrics
        assert metrics == ExtractionMetrics(success_count=3, total_count=15)
        assert metrics.success_rate == pytest.approx(0.2)

    def test_to_dict_is_json_ready(self):
        """The engine is rendered as its string value."""
        out = make_record(ocr_engine=OCREngine.MLKIT, nama="BUDI").to_dict()
        assert out["ocr_engine"] == "Google MLKit"
        assert out["nama"] == "BUDI"
        assert out["nik"] is None
        assert json.loads(json.dumps(out)) == out

    def test_equal_records(self):
        """Records with the same values compare equal."""
        assert make_record(nama="BUDI") == make_record(nama="BUDI")
        assert make_record(nama="BUDI") != make_record(nama="SITI")


class TestExtractionMetrics:
    """ExtractionMetrics edge cases."""

    def test_zero_total(self):
        """No strategies means a zero success rate, not a division error."""
        assert ExtractionMetrics(success_count=0, total_count=0).success_rate == 0.0

    def test_from_fields(self):
        """None values are counted as missing."""
        metrics = ExtractionMetrics.from_fields({"a": "x", "b": None, "c": "-"})
        assert (metrics.success_count, metrics.total_count) == (2, 3)
