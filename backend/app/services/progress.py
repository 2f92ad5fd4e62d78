"""Extraction progress observers."""

from typing import List, Optional

from app.config import logger
from app.models.extraction import ExtractionProgress, ExtractionStage


class ProgressObserver:
    """Receives extraction progress synchronously. Advisory only: it must not raise."""

    def on_progress(self, progress: ExtractionProgress) -> None:
        pass

    def report(self, stage: ExtractionStage, message: str, percentage: Optional[int] = None,
               total_questions: Optional[int] = None) -> None:
        self.on_progress(ExtractionProgress(
            stage=stage,
            message=message,
            percentage=percentage,
            total_questions=total_questions,
        ))


class LoggingProgressObserver(ProgressObserver):
    def __init__(self, label: str = "PDF Import"):
        self.label = label

    def on_progress(self, progress: ExtractionProgress) -> None:
        logger.info(f"[{self.label}] {progress.stage.value}: {progress.message} ({progress.percentage}%)")


class RecordingProgressObserver(ProgressObserver):
    """Keeps every event; used to echo the stage sequence back and in tests."""

    def __init__(self):
        self.events: List[ExtractionProgress] = []

    def on_progress(self, progress: ExtractionProgress) -> None:
        self.events.append(progress)

    @property
    def stages(self) -> List[ExtractionStage]:
        return [event.stage for event in self.events]


class FanoutProgressObserver(ProgressObserver):
    def __init__(self, *observers: Optional[ProgressObserver]):
        self.observers = [o for o in observers if o is not None]

    def on_progress(self, progress: ExtractionProgress) -> None:
        for observer in self.observers:
            observer.on_progress(progress)
