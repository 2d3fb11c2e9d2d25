"""Catalogue Quality — completeness scoring over medicine records.

Invariants:
    - Score is 0–100: name 20, barcode 20, manufacturer 15, dosage 15,
      form 10, species 10, indication 10
    - Valid barcode: 8–13 digits (EAN-8, UPC-A, EAN-13)
    - duplicate_barcodes counts occurrences beyond the first per barcode
    - Buckets: complete >= 90, partial 70–89, incomplete < 70

Design Decisions:
    - Applied to the medicines shape only; the richer drugs table of the
      import pipeline is out of reach of this backend
"""

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Mapping

from vetcepi.core.domain_types import QualityBucket

BARCODE_PATTERN = re.compile(r"^\d{8,13}$")

FIELD_WEIGHTS: dict[str, int] = {
    "name": 20,
    "barcode": 20,
    "manufacturer": 15,
    "dosage": 15,
    "form": 10,
    "species": 10,
    "indication": 10,
}

COMPLETE_THRESHOLD = 90
PARTIAL_THRESHOLD = 70


def is_valid_barcode(barcode: str | None) -> bool:
    return bool(barcode) and bool(BARCODE_PATTERN.match(barcode))


def _present(value: Any) -> bool:
    if isinstance(value, str):
        return bool(value.strip())
    return value is not None


def quality_score(record: Mapping[str, Any]) -> int:
    return sum(
        weight for name, weight in FIELD_WEIGHTS.items()
        if _present(record.get(name))
    )


def bucket_for(score: int) -> QualityBucket:
    if score >= COMPLETE_THRESHOLD:
        return QualityBucket.COMPLETE
    if score >= PARTIAL_THRESHOLD:
        return QualityBucket.PARTIAL
    return QualityBucket.INCOMPLETE


@dataclass
class LowQualityRecord:
    id: str
    name: str
    score: int


@dataclass
class QualityReport:
    total: int = 0
    complete: int = 0
    partial: int = 0
    incomplete: int = 0
    missing: dict[str, int] = field(
        default_factory=lambda: {name: 0 for name in FIELD_WEIGHTS},
    )
    invalid_barcodes: int = 0
    duplicate_barcodes: int = 0
    low_quality: list[LowQualityRecord] = field(default_factory=list)
    average_score: int = 0

    def share(self, count: int) -> float:
        """Percentage of total, 0.0 for an empty catalogue."""
        return round(100 * count / self.total, 1) if self.total else 0.0


def build_report(records: list[Mapping[str, Any]]) -> QualityReport:
    report = QualityReport(total=len(records))
    if not records:
        return report

    counts = Counter(
        r["barcode"] for r in records if _present(r.get("barcode"))
    )
    report.duplicate_barcodes = sum(c - 1 for c in counts.values() if c > 1)

    scores = []
    for record in records:
        for name in FIELD_WEIGHTS:
            if not _present(record.get(name)):
                report.missing[name] += 1
        barcode = record.get("barcode")
        if _present(barcode) and not is_valid_barcode(barcode):
            report.invalid_barcodes += 1

        score = quality_score(record)
        scores.append(score)
        bucket = bucket_for(score)
        if bucket is QualityBucket.COMPLETE:
            report.complete += 1
        elif bucket is QualityBucket.PARTIAL:
            report.partial += 1
        else:
            report.incomplete += 1
            report.low_quality.append(LowQualityRecord(
                id=str(record.get("id")),
                name=record.get("name") or "Unknown",
                score=score,
            ))

    report.low_quality.sort(key=lambda r: r.score)
    # half-up
    report.average_score = int(sum(scores) / len(scores) + 0.5)
    return report


def recommendations(report: QualityReport) -> list[str]:
    tips = []
    if report.missing["barcode"]:
        tips.append(f"{report.missing['barcode']} medicines need barcodes")
    if report.missing["manufacturer"]:
        tips.append(
            f"{report.missing['manufacturer']} medicines missing manufacturer",
        )
    if report.duplicate_barcodes:
        tips.append(
            f"{report.duplicate_barcodes} duplicate barcodes found - review and merge",
        )
    if report.incomplete:
        tips.append(
            f"{report.incomplete} incomplete records - fill essential fields first",
        )
    if report.total and report.average_score < 80:
        tips.append(f"Average quality score is {report.average_score}% - aim for 80%+")
    return tips
