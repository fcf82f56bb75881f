"""
Shared fixtures for the KTP parser tests.
"""

from typing import Any, List, Tuple

import pytest

from ktp_parser import KTPParser


class RecordingLogger:
    """OCRLoggerProtocol implementation that keeps every call for assertions."""

    def __init__(self):
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self._next_op = 0

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))

    def names(self) -> List[str]:
        return [name for name, _ in self.calls]

    def args_of(self, name: str) -> List[Tuple[Any, ...]]:
        return [args for call, args in self.calls if call == name]

    def log_process(self, message, details=None, session_id=None):
        self._record("log_process", message, details, session_id)

    def log_success(self, message, details=None, session_id=None):
        self._record("log_success", message, details, session_id)

    def log_warning(self, message, details=None, session_id=None):
        self._record("log_warning", message, details, session_id)

    def log_error(self, message, error=None, session_id=None):
        self._record("log_error", message, error, session_id)

    def log_performance_start(self, operation, engine, session_id=None):
        self._next_op += 1
        op_id = f"op-{self._next_op}"
        self._record("log_performance_start", operation, engine, session_id)
        return op_id

    def log_performance_end(self, operation_id, session_id=None, result=None):
        self._record("log_performance_end", operation_id, session_id, result)

    def log_performance_metric(self, name, value, engine, session_id=None):
        self._record("log_performance_metric", name, value, engine, session_id)

    def log_text_extraction(self, engine, text_length, confidence, session_id=None):
        self._record("log_text_extraction", engine, text_length, confidence, session_id)

    def log_field_extraction(self, field_name, value, success, session_id=None):
        self._record("log_field_extraction", field_name, value, success, session_id)


COMPLETE_KTP_TEXT = """
PROVINSI DKI JAKARTA
KOTA JAKARTA SELATAN

NIK: 3174051234567890
Nama: BUDI SANTOSO
Tempat/Tgl Lahir: JAKARTA, 15-08-1990
Jenis Kelamin: LAKI-LAKI
Alamat: JL. SUDIRMAN NO. 123
RT/RW: 003/005
Kel/Desa: KEBAYORAN BARU
Kecamatan: KEBAYORAN BARU
Agama: ISLAM
Status Perkawinan: KAWIN
Pekerjaan: KARYAWAN SWASTA
Kewarganegaraan: WNI
Berlaku Hingga: SEUMUR HIDUP
"""


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def parser(recording_logger) -> KTPParser:
    return KTPParser(logger=recording_logger)


@pytest.fixture
def complete_ktp_text() -> str:
    return COMPLETE_KTP_TEXT

