"""
Instrument Confidence History
=============================

Bounded per-instrument record of past confidences, used to derive:
- confidence delta against the immediately preceding result
- trend (RISING / FALLING / STABLE) from the last two windows of 5
- reliability from the historical variance of confidence

InstrumentHistoryStore is an explicit keyed store handed to whoever ingests
results. Writes for one instrument are serialized by a per-instrument lock,
so concurrent evaluations of different instruments never block each other
while the delta for one instrument always reads its latest stored value.

Author: AlphaConfluence Quant
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Deque, Dict, List, Optional

import numpy as np

from alphaconfluence.config import HistoryConfig

logger = logging.getLogger(__name__)


class ConfidenceTrend(Enum):
    RISING = "RISING"
    FALLING = "FALLING"
    STABLE = "STABLE"


@dataclass(frozen=True)
class HistorySummary:
    """Read-only view of one instrument's history after an update"""
    instrument: str
    average_confidence: float
    trend: ConfidenceTrend
    reliability: float
    last_confidence: float
    confidence_delta: float
    sample_count: int
    last_update: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            'instrument': self.instrument,
            'average_confidence': round(self.average_confidence, 4),
            'trend': self.trend.value,
            'reliability': round(self.reliability, 4),
            'last_confidence': round(self.last_confidence, 4),
            'confidence_delta': round(self.confidence_delta, 4),
            'sample_count': self.sample_count,
            'last_update': self.last_update.isoformat(),
        }


@dataclass
class InstrumentHistory:
    """Mutable history for one instrument. Only InstrumentHistoryStore writes to it."""
    instrument: str
    max_length: int = HistoryConfig.MAX_HISTORY_LENGTH
    confidences: Deque[float] = field(default_factory=deque)
    average_confidence: float = 0.0
    trend: ConfidenceTrend = ConfidenceTrend.STABLE
    reliability: float = HistoryConfig.DEFAULT_RELIABILITY
    last_confidence: float = 0.0
    confidence_delta: float = 0.0
    last_update: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        self.confidences = deque(self.confidences, maxlen=self.max_length)
        if self.confidences:
            self._refresh()

    def record(self, confidence: float, timestamp: Optional[datetime] = None) -> None:
        previous = self.confidences[-1] if self.confidences else None
        self.confidences.append(float(confidence))
        self.confidence_delta = 0.0 if previous is None else float(confidence) - previous
        self.last_update = timestamp or datetime.now()
        self._refresh()

    def _refresh(self) -> None:
        values = np.array(self.confidences, dtype=float)
        self.average_confidence = float(np.mean(values))
        self.last_confidence = float(values[-1])
        self.trend = self._trend(values)
        self.reliability = self._reliability(values)

    @staticmethod
    def _trend(values: np.ndarray) -> ConfidenceTrend:
        window = HistoryConfig.TREND_WINDOW
        if values.size < window:
            return ConfidenceTrend.STABLE

        recent = values[-window:]
        older = values[-2 * window:-window]
        if older.size == 0:
            return ConfidenceTrend.STABLE

        difference = float(np.mean(recent) - np.mean(older))
        if difference > HistoryConfig.TREND_THRESHOLD:
            return ConfidenceTrend.RISING
        elif difference < -HistoryConfig.TREND_THRESHOLD:
            return ConfidenceTrend.FALLING
        return ConfidenceTrend.STABLE

    @staticmethod
    def _reliability(values: np.ndarray) -> float:
        if values.size < HistoryConfig.MIN_RELIABILITY_SAMPLES:
            return HistoryConfig.DEFAULT_RELIABILITY

        consistency = max(0.0, 1 - float(np.var(values)) * 2)
        reliability = 0.5 + (consistency - 0.5) * 0.4
        return float(np.clip(reliability, HistoryConfig.RELIABILITY_FLOOR, HistoryConfig.RELIABILITY_CEILING))

    def summary(self) -> HistorySummary:
        return HistorySummary(
            instrument=self.instrument,
            average_confidence=self.average_confidence,
            trend=self.trend,
            reliability=self.reliability,
            last_confidence=self.last_confidence,
            confidence_delta=self.confidence_delta,
            sample_count=len(self.confidences),
            last_update=self.last_update,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = self.summary().to_dict()
        data['confidences'] = list(self.confidences)
        return data


class InstrumentHistoryStore:
    """
    Keyed store: instrument -> InstrumentHistory.

    Usage:
        store = InstrumentHistoryStore()
        summary = store.record("SPY", 0.67)
        summary.confidence_delta  # vs. the previous SPY result
    """

    def __init__(self, max_length: Optional[int] = None):
        self.max_length = max_length or HistoryConfig.MAX_HISTORY_LENGTH
        self._histories: Dict[str, InstrumentHistory] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, instrument: str) -> threading.Lock:
        with self._registry_lock:
            if instrument not in self._locks:
                self._locks[instrument] = threading.Lock()
            return self._locks[instrument]

    def record(self, instrument: str, confidence: float, timestamp: Optional[datetime] = None) -> HistorySummary:
        """Append a confidence and return the updated summary"""
        with self._lock_for(instrument):
            history = self._histories.get(instrument)
            if history is None:
                history = InstrumentHistory(instrument=instrument, max_length=self.max_length)
                self._histories[instrument] = history
            history.record(confidence, timestamp)
            return history.summary()

    def get(self, instrument: str) -> Optional[HistorySummary]:
        with self._lock_for(instrument):
            history = self._histories.get(instrument)
            return history.summary() if history else None

    def confidences(self, instrument: str) -> List[float]:
        with self._lock_for(instrument):
            history = self._histories.get(instrument)
            return list(history.confidences) if history else []

    def instruments(self) -> List[str]:
        with self._registry_lock:
            return sorted(self._histories.keys())

    def all_confidences(self) -> List[float]:
        """Every stored confidence across instruments, oldest first per instrument"""
        values: List[float] = []
        for instrument in self.instruments():
            values.extend(self.confidences(instrument))
        return values

    def statistics(self) -> Dict[str, Any]:
        summaries = [s for s in (self.get(i) for i in self.instruments()) if s is not None]
        trend_counts = {t.value: 0 for t in ConfidenceTrend}
        for summary in summaries:
            trend_counts[summary.trend.value] += 1

        return {
            'instruments': len(summaries),
            'total_records': sum(s.sample_count for s in summaries),
            'average_confidence': float(np.mean([s.average_confidence for s in summaries])) if summaries else 0.0,
            'average_reliability': float(np.mean([s.reliability for s in summaries])) if summaries else 0.0,
            'trend_counts': trend_counts,
        }

    def reset(self, instrument: Optional[str] = None) -> None:
        """Clear one instrument's history, or everything"""
        if instrument is None:
            # Per-instrument locks stay registered so in-flight writers keep serializing
            for name in self.instruments():
                with self._lock_for(name):
                    self._histories.pop(name, None)
            logger.info("Cleared all instrument history")
            return

        with self._lock_for(instrument):
            self._histories.pop(instrument, None)
        logger.info(f"Cleared history for {instrument}")

    def export_data(self) -> Dict[str, Dict[str, Any]]:
        """JSON-friendly dump of every history"""
        data = {}
        for instrument in self.instruments():
            with self._lock_for(instrument):
                history = self._histories.get(instrument)
                if history is not None:
                    data[instrument] = {
                        'confidences': list(history.confidences),
                        'last_update': history.last_update.isoformat(),
                    }
        return data

    def import_data(self, data: Dict[str, Dict[str, Any]]) -> int:
        """
        Replace histories from an export_data() dump.

        Returns:
            Number of instruments imported
        """
        imported = 0
        for instrument, entry in data.items():
            confidences = [float(c) for c in entry.get('confidences', [])]
            last_update = entry.get('last_update')
            history = InstrumentHistory(
                instrument=instrument,
                max_length=self.max_length,
                confidences=deque(confidences),
                last_update=datetime.fromisoformat(last_update) if last_update else datetime.now(),
            )
            with self._lock_for(instrument):
                self._histories[instrument] = history
            imported += 1

        logger.info(f"Imported history for {imported} instruments")
        return imported
