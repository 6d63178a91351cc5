import logging

from clipsense.config import MAX_SUGGESTIONS, MIN_CONFIDENCE
from clipsense.detectors import AnalysisResult, Detector, default_detectors
from clipsense.models import DetectedType, Suggestion

logger = logging.getLogger(__name__)


class ContentAnalyzer:
    """Runs every registered detector over a piece of text and ranks the hits."""

    def __init__(self, detectors: list[Detector] | None = None, max_suggestions: int = MAX_SUGGESTIONS):
        self._detectors = list(detectors) if detectors is not None else default_detectors()
        self._max_suggestions = max_suggestions

    @property
    def detectors(self) -> list[Detector]:
        return list(self._detectors)

    def analyze(self, content: str) -> list[DetectedType]:
        detected: list[DetectedType] = []
        for detector in self._detectors:
            try:
                if not detector.detect(content):
                    continue
                result = detector.analyze(content)
            except Exception:
                logger.exception("Error in %s detector", detector.type)
                continue

            if result.confidence > MIN_CONFIDENCE:
                detected.append(DetectedType(
                    type=detector.type,
                    confidence=result.confidence,
                    metadata=result.metadata,
                    preview=result.preview,
                ))

        # sort() is stable, so equal scores keep declaration order
        detected.sort(key=lambda d: d.confidence, reverse=True)
        return detected

    def get_suggestions(self, content: str, detected_types: list[DetectedType]) -> list[Suggestion]:
        suggestions: list[Suggestion] = []
        seen: list[tuple[str, dict]] = []
        for detected in detected_types:
            detector = self._find_detector(detected.type)
            if detector is None:
                continue
            analysis = AnalysisResult(
                confidence=detected.confidence,
                metadata=detected.metadata,
                preview=detected.preview,
            )
            try:
                proposed = detector.get_suggestions(content, analysis)
            except Exception:
                logger.exception("Error getting suggestions from %s detector", detector.type)
                continue

            for suggestion in proposed:
                # params may hold unhashable values, so compare by equality
                key = (suggestion.action_name, suggestion.params)
                if key in seen:
                    continue
                seen.append(key)
                suggestions.append(suggestion)
                if len(suggestions) >= self._max_suggestions:
                    return suggestions
        return suggestions

    def _find_detector(self, detected_type: str) -> Detector | None:
        for detector in self._detectors:
            if detector.type == detected_type:
                return detector
        return None
