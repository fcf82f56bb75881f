"""
filepath: ktp_field_extractors.py

Field extraction strategies for KTP OCR text.

Each KTP field has one pure function `extract_<field>(lines) -> Optional[str]`
working over the preprocessed line list. Functions share a handful of
label/value helpers and never raise: no match is always `None`.

Why:
  OCR output breaks lines in different places, abbreviates labels and glues
  neighbouring fields together. Small per-field rules with explicit fallback
  chains stay explainable and can be tested one field at a time.

Public API:
  - preprocess_text(raw_text) -> List[str]
  - is_likely_label / cleaned_value / value_for_label / extract_date
  - extract_* (one per field) and default_extractors()
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Sequence


# -----------------------
# Vocabulary
# -----------------------
# Canonical KTP labels; any candidate value containing one of these is really
# another field's label that OCR merged into the line.
KTP_LABELS: List[str] = [
    "NIK", "Nama", "Tempat/Tgl Lahir", "Jenis Kelamin", "Alamat", "RT/RW",
    "Kel/Desa", "Kecamatan", "Agama", "Status Perkawinan", "Pekerjaan",
    "Kewarganegaraan", "Berlaku Hingga", "Gol. Darah",
]

RELIGIONS: List[str] = ["ISLAM", "KRISTEN", "KATOLIK", "HINDU", "BUDDHA", "KONGHUCU"]

MALE_KEYWORDS = ("LAKI", "PRIA")
FEMALE_KEYWORDS = ("PEREMPUAN", "WANITA")

LIFETIME_VALIDITY = "SEUMUR HIDUP"

# Digit classes are ASCII-only so a NIK is always 16 ASCII digits.
DATE_RE = re.compile(r'\b\d{1,2}[-/]\d{1,2}[-/]\d{4}\b', re.ASCII)
NIK_RE = re.compile(r'\b\d{16}\b', re.ASCII)
NON_DIGIT_RE = re.compile(r'[^0-9]')
LINE_BREAK_RE = re.compile(r'\r\n|[\n\r\x0b\x0c\x85\u2028\u2029]')

TTL_RE = re.compile(
    r'(?:TEMPAT[/\s]*TG[LI][.\s]*LAHIR)\s*:?\s*([A-Z\s]+?)(?:\s*,\s*|\s+)(?=\d{1,2}[-/]\d{1,2}[-/]\d{4})',
    re.IGNORECASE | re.ASCII,
)

RT_RW_SIMPLE_RE = re.compile(r'\b\d{2,3}/\d{2,3}\b', re.ASCII)
RT_RW_FULL_RE = re.compile(
    r'RT\s*[:/]?\s*(\d{2,3})\s*/\s*RW\s*[:/]?\s*(\d{2,3})',
    re.IGNORECASE | re.ASCII,
)

KELURAHAN_RE = re.compile(
    r'(?:KEL[/\s]*[DL]ESA|KELURAHAN)\s*:?\s*([A-Z\s]+?)(?=\s*$|\s+[A-Z]+\s*:|\s*,)',
    re.IGNORECASE | re.ASCII,
)
KELURAHAN_LABELS = ("Kel/Desa", "KelDesa", "KelLesa", "Kelurahan")

KECAMATAN_STRIP_RE = re.compile(r'KECAMATAN|KEC', re.IGNORECASE)

# AB must precede A and B in the alternation or "AB" would be cut to "A".
BLOOD_TYPE_RE = re.compile(
    r'GOL\.?\s*DARAH\s*:\s*(AB[+-]?|A[+-]?|B[+-]?|O[+-]?|-)',
    re.IGNORECASE,
)


# -----------------------
# Preprocessing
# -----------------------
def preprocess_text(raw_text: str) -> List[str]:
    """Split raw OCR text into trimmed, non-empty lines in source order."""
    if not raw_text:
        return []
    return [line.strip() for line in LINE_BREAK_RE.split(raw_text) if line.strip()]


# -----------------------
# Label/value helpers
# -----------------------
def is_likely_label(text: str) -> bool:
    """True when `text` contains any canonical KTP label (case-insensitive)."""
    upper = text.strip().upper()
    return any(label.upper() in upper for label in KTP_LABELS)


def cleaned_value(label: str, text: str) -> str:
    """Drop `label` (case-insensitive) and colons from `text`, then trim."""
    result = re.sub(re.escape(label), "", text, flags=re.IGNORECASE)
    return result.replace(":", "").strip()


def _strip_leading_colon(line: str) -> str:
    line = line.strip()
    if line.startswith(":"):
        line = line[1:].strip()
    return line


def value_for_label(label: str, lines: Sequence[str], start_at: int = 0) -> Optional[str]:
    """Find the value printed for `label`, on the same line or the next one.

    What:
        Scans from `start_at` for the first line containing `label`. The
        same-line remainder wins when it is non-empty and not itself a label;
        otherwise the following line (minus one leading colon) is tried under
        the same rule.

    Notes:
        Only the first line containing the label is considered. A later
        duplicate of the label is never examined, even when the first one
        yields nothing.
    """
    upper_label = label.upper()
    for i in range(start_at, len(lines)):
        line = lines[i]
        if upper_label not in line.upper():
            continue

        same_line = cleaned_value(label, line)
        if same_line and not is_likely_label(same_line):
            return same_line

        if i + 1 >= len(lines):
            return None
        next_line = _strip_leading_colon(lines[i + 1])
        if next_line and not is_likely_label(next_line):
            return next_line
        return None

    return None


def extract_date(text: str) -> Optional[str]:
    """Return the first D-M-YYYY / D/M/YYYY date in `text`, verbatim."""
    m = DATE_RE.search(text)
    return m.group(0) if m else None


# -----------------------
# Field strategies
# -----------------------
def extract_nik(lines: Sequence[str]) -> Optional[str]:
    """16-digit NIK: a standalone run on any line, or the digits of the line after a 'NIK' label."""
    for i, line in enumerate(lines):
        m = NIK_RE.search(line)
        if m:
            return m.group(0)

        if "NIK" in line.upper() and i + 1 < len(lines):
            digits = NON_DIGIT_RE.sub("", lines[i + 1])
            if len(digits) == 16:
                return digits
    return None


def extract_nama(lines: Sequence[str]) -> Optional[str]:
    return value_for_label("Nama", lines)


def extract_tempat_lahir(lines: Sequence[str]) -> Optional[str]:
    """Place of birth from the combined 'Tempat/Tgl Lahir' field.

    What:
        1) Regex over the joined text: label variant (TGL/TGI), optional colon,
           the place, then a comma or whitespace right before a date.
        2) Label lookup on two spellings, keeping the part before the first
           comma or removing an embedded date.
    """
    joined = " ".join(lines)
    m = TTL_RE.search(joined)
    if m:
        place = m.group(1).strip()
        if place.endswith(","):
            place = place[:-1].strip()
        return place or None

    value = value_for_label("Tempat/Tgl Lahir", lines) or value_for_label("Tempat/Tgi Lahir", lines)
    if value is None:
        return None

    if "," in value:
        value = value.split(",", 1)[0].strip()
    else:
        date = extract_date(value)
        if date:
            value = value.replace(date, "").strip().strip(",").strip()

    return value or None


def extract_tanggal_lahir(lines: Sequence[str]) -> Optional[str]:
    """Birth date from the 'Tempat/Tgl Lahir' value, else the first date anywhere."""
    value = value_for_label("Tempat/Tgl Lahir", lines)
    if value:
        date = extract_date(value)
        if date:
            return date

    # first date in the text is usually the birth date; expiry dates come later
    for line in lines:
        date = extract_date(line)
        if date:
            return date
    return None


def extract_jenis_kelamin(lines: Sequence[str]) -> Optional[str]:
    """Gender normalized to exactly LAKI-LAKI or PEREMPUAN."""
    value = value_for_label("Jenis Kelamin", lines)
    if value is None:
        return None

    upper = value.upper()
    if any(k in upper for k in MALE_KEYWORDS):
        return "LAKI-LAKI"
    if any(k in upper for k in FEMALE_KEYWORDS):
        return "PEREMPUAN"
    return None


def extract_alamat(lines: Sequence[str]) -> Optional[str]:
    return value_for_label("Alamat", lines)


def extract_rt_rw(lines: Sequence[str]) -> Optional[str]:
    """RT/RW as the bare 'NNN/NNN' pair, never the labeled text.

    Per line, in order:
        a) a bare `NN(N)/NN(N)` pair,
        b) an 'RT ... / RW ...' labeled span, keeping only a bare pair inside it,
        c) an 'RT/RW' label whose numbers sit on the next line.
    """
    for i, line in enumerate(lines):
        m = RT_RW_SIMPLE_RE.search(line)
        if m:
            return m.group(0)

        full = RT_RW_FULL_RE.search(line)
        if full:
            m = RT_RW_SIMPLE_RE.search(full.group(0))
            if m:
                return m.group(0)

        if "RT/RW" in line.upper() and i + 1 < len(lines):
            m = RT_RW_SIMPLE_RE.search(_strip_leading_colon(lines[i + 1]))
            if m:
                return m.group(0)
    return None


def extract_kelurahan(lines: Sequence[str]) -> Optional[str]:
    """Village (Kel/Desa) via regex, then label lookups over spelling variants."""
    for line in lines:
        m = KELURAHAN_RE.search(line)
        if not m:
            continue
        value = m.group(1).strip()
        if value and not is_likely_label(value):
            return value

    for label in KELURAHAN_LABELS:
        value = value_for_label(label, lines)
        if value:
            return value
    return None


def extract_kecamatan(lines: Sequence[str]) -> Optional[str]:
    """District via the 'Kecamatan' label, falling back to abbreviated 'KEC' lines."""
    value = value_for_label("Kecamatan", lines)
    if value:
        return value

    for i, line in enumerate(lines):
        if "KEC" not in line.upper():
            continue
        cleaned = KECAMATAN_STRIP_RE.sub("", line).replace(":", "").strip()
        if cleaned and not is_likely_label(cleaned):
            return cleaned

        if i + 1 < len(lines):
            next_line = _strip_leading_colon(lines[i + 1])
            if next_line and not is_likely_label(next_line):
                return next_line
    return None


def extract_agama(lines: Sequence[str]) -> Optional[str]:
    """Religion from the closed canonical set; exact substring match only."""
    for line in lines:
        upper = line.upper()
        for religion in RELIGIONS:
            if religion in upper:
                return religion
    return None


def _normalize_marital_status(text: str) -> Optional[str]:
    upper = text.upper()
    # BELUM first: "BELUM KAWIN" also contains KAWIN
    if "BELUM" in upper:
        return "BELUM KAWIN"
    if "KAWIN" in upper:
        return "KAWIN"
    if "CERAI" in upper:
        return "CERAI"
    return None


def extract_status_perkawinan(lines: Sequence[str]) -> Optional[str]:
    """Marital status from its label, else from any line carrying the keywords."""
    value = value_for_label("Status Perkawinan", lines)
    if value is not None:
        return _normalize_marital_status(value)

    for line in lines:
        upper = line.upper()
        if "STATUS" in upper or "KAWIN" in upper or "CERAI" in upper:
            status = _normalize_marital_status(upper)
            if status:
                return status
    return None


def extract_pekerjaan(lines: Sequence[str]) -> Optional[str]:
    return value_for_label("Pekerjaan", lines)


def extract_kewarganegaraan(lines: Sequence[str]) -> Optional[str]:
    """WNI or WNA; WNI wins when a line somehow carries both."""
    for line in lines:
        upper = line.upper()
        if "KEWARGANEGARAAN" not in upper and "WNI" not in upper and "WNA" not in upper:
            continue
        if "WNI" in upper:
            return "WNI"
        if "WNA" in upper:
            return "WNA"
    return None


def extract_berlaku_hingga(lines: Sequence[str]) -> Optional[str]:
    """Validity: 'SEUMUR HIDUP' anywhere in the text, else a date on or after a 'BERLAKU' line."""
    if LIFETIME_VALIDITY in " ".join(line.upper() for line in lines):
        return LIFETIME_VALIDITY

    for i, line in enumerate(lines):
        if "BERLAKU" not in line.upper():
            continue
        date = extract_date(line)
        if date:
            return date
        if i + 1 < len(lines):
            date = extract_date(lines[i + 1])
            if date:
                return date
    return None


def extract_golongan_darah(lines: Sequence[str]) -> Optional[str]:
    """Blood type; '-' means the card prints no blood type, None means no such field."""
    for line in lines:
        upper = line.upper()
        if "DARAH" not in upper:
            continue
        if "ALAMAT" in upper or "AGAMA" in upper:
            continue
        m = BLOOD_TYPE_RE.search(line)
        if m:
            return m.group(1).upper()
    return None


# -----------------------
# Strategy registry
# -----------------------
class FieldExtractionStrategy(Protocol):
    """Anything with a field name and a pure `extract(lines)`."""
    field_name: str

    def extract(self, lines: Sequence[str]) -> Optional[str]: ...


@dataclass(frozen=True)
class FieldExtractor:
    """Pairs a record field name with its pure extraction function."""
    field_name: str
    func: Callable[[Sequence[str]], Optional[str]]

    def extract(self, lines: Sequence[str]) -> Optional[str]:
        return self.func(lines)


def default_extractors() -> List[FieldExtractor]:
    """The fifteen KTP strategies in canonical field order."""
    return [
        FieldExtractor("nik", extract_nik),
        FieldExtractor("nama", extract_nama),
        FieldExtractor("tempat_lahir", extract_tempat_lahir),
        FieldExtractor("tanggal_lahir", extract_tanggal_lahir),
        FieldExtractor("jenis_kelamin", extract_jenis_kelamin),
        FieldExtractor("alamat", extract_alamat),
        FieldExtractor("rt_rw", extract_rt_rw),
        FieldExtractor("kelurahan", extract_kelurahan),
        FieldExtractor("kecamatan", extract_kecamatan),
        FieldExtractor("agama", extract_agama),
        FieldExtractor("status_perkawinan", extract_status_perkawinan),
        FieldExtractor("pekerjaan", extract_pekerjaan),
        FieldExtractor("kewarganegaraan", extract_kewarganegaraan),
        FieldExtractor("berlaku_hingga", extract_berlaku_hingga),
        FieldExtractor("golongan_darah", extract_golongan_darah),
    ]
