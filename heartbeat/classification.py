"""Heart rate classification."""

from typing import NamedTuple

from heartbeat.config import BRADYCARDIA_THRESHOLD, TACHYCARDIA_THRESHOLD

STATUS_NORMAL = "Normal"
STATUS_ABNORMAL = "Abnormal"

BRADYCARDIA_LABEL = f"Bradycardia - low heart rate (<{BRADYCARDIA_THRESHOLD} BPM)"
TACHYCARDIA_LABEL = f"Tachycardia - high heart rate (>{TACHYCARDIA_THRESHOLD} BPM)"
NORMAL_LABEL = (
    f"Heart rate within normal range ({BRADYCARDIA_THRESHOLD}-{TACHYCARDIA_THRESHOLD} BPM)"
)


class Classification(NamedTuple):
    status: str
    kondisi: str


def classify(bpm: int) -> Classification:
    """
    Map a heart rate to its status and condition label.

    The normal range is inclusive on both ends, so 60 and 100 are Normal.
    """
    if bpm < BRADYCARDIA_THRESHOLD:
        return Classification(STATUS_ABNORMAL, BRADYCARDIA_LABEL)
    if bpm > TACHYCARDIA_THRESHOLD:
        return Classification(STATUS_ABNORMAL, TACHYCARDIA_LABEL)
    return Classification(STATUS_NORMAL, NORMAL_LABEL)
