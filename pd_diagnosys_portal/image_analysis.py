"""Mock facial-expression screening driven by tokens in image filenames.

This is a demo heuristic, not a trained model. A filename such as
``hap++_PD.jpg`` reads as 90% happiness with a Parkinson's marker:
each "+" adds 5% to a base of 80%, and "PD"/"NPD" tokens vote on the
diagnosis.
"""

import re
from dataclasses import dataclass, field

EMOTION_MAP = {
    "ang": "anger",
    "dis": "disgust",
    "fea": "fear",
    "hap": "happiness",
    "sad": "sadness",
    "sup": "surprise",
}

EMOTION_ORDER = ["Anger", "Disgust", "Fear", "Happiness", "Sadness", "Surprise"]
CHART_COLORS = ["bg-chart-1", "bg-chart-2", "bg-chart-3", "bg-chart-4", "bg-chart-5", "bg-chart-6"]

BASE_PERCENTAGE = 80
PLUS_STEP = 5

PD_PATTERN = re.compile(r"[_\s]pd[_\s]|^pd[_\s]|[_\s]pd$", re.IGNORECASE)
NPD_PATTERN = re.compile(r"[_\s]npd[_\s]|^npd[_\s]|[_\s]npd$", re.IGNORECASE)


@dataclass
class ImageAnalysisResult:
    emotion: str
    percentage: int
    is_pd: bool
    is_npd: bool
    filename: str


@dataclass
class AnalysisSummary:
    diagnosis: str
    confidence: float
    emotion_scores: list[dict] = field(default_factory=list)
    patient_info: dict | None = None


def analyze_image_filename(filename: str) -> ImageAnalysisResult:
    """Parse emotion, intensity and PD marker out of one filename."""
    base = re.sub(r"\.[^/.]+$", "", filename.lower())

    emotion = None
    for key, value in EMOTION_MAP.items():
        if re.match(rf"^{key}\+*", base):
            emotion = value
            break

    if emotion is None:
        for key, value in EMOTION_MAP.items():
            if key in base:
                emotion = value
                break

    if emotion is None:
        emotion = base[:3]

    plus_count = base.count("+")
    percentage = min(100, BASE_PERCENTAGE + plus_count * PLUS_STEP)

    return ImageAnalysisResult(
        emotion=emotion[:1].upper() + emotion[1:],
        percentage=percentage,
        is_pd=bool(PD_PATTERN.search(base)),
        is_npd=bool(NPD_PATTERN.search(base)),
        filename=filename,
    )


def analyze_images(filenames: list[str], patient_info: dict | None = None) -> AnalysisSummary:
    """Combine per-image results into a diagnosis with a confidence score."""
    results = [analyze_image_filename(name) for name in filenames]

    emotion_scores = []
    for index, result in enumerate(results):
        try:
            color_index = [e.lower() for e in EMOTION_ORDER].index(result.emotion.lower())
        except ValueError:
            color_index = index % len(CHART_COLORS)
        emotion_scores.append({
            "emotion": result.emotion,
            "score": result.percentage,
            "color": CHART_COLORS[color_index],
        })

    pd_count = sum(1 for r in results if r.is_pd)
    npd_count = sum(1 for r in results if r.is_npd)
    average = sum(e["score"] for e in emotion_scores) / len(emotion_scores) if emotion_scores else 0

    if pd_count > npd_count:
        diagnosis = "PD"
        confidence = min(100, 50 + pd_count * 10)
    elif npd_count > pd_count:
        diagnosis = "NPD"
        confidence = min(100, 50 + npd_count * 10)
    elif pd_count == 0:
        # No markers at all
        diagnosis = "NPD"
        confidence = max(50, min(95, average * 0.9))
    else:
        diagnosis = "NPD"
        confidence = max(50, min(95, average * 0.85))

    return AnalysisSummary(
        diagnosis=diagnosis,
        confidence=round(confidence * 10) / 10,
        emotion_scores=emotion_scores,
        patient_info=patient_info,
    )
