"""Tests for the filename-driven mock analysis."""

import pytest

from pd_diagnosys_portal.image_analysis import analyze_image_filename, analyze_images


class TestAnalyzeImageFilename:
    """Tests for single filename parsing."""

    @pytest.mark.parametrize("filename, emotion, percentage", [
        ("hap.jpg", "Happiness", 80),
        ("ang+.png", "Anger", 85),
        ("fea+++_PD.jpeg", "Fear", 95),
        ("sup+++++++.jpg", "Surprise", 100),
        ("photo_sad.png", "Sadness", 80),
        ("xyz.jpg", "Xyz", 80),
    ])
    def test_emotion_and_intensity(self, filename, emotion, percentage):
        result = analyze_image_filename(filename)
        assert result.emotion == emotion
        assert result.percentage == percentage
        assert result.filename == filename

    def test_pd_marker(self):
        result = analyze_image_filename("hap++_PD.jpg")
        assert result.is_pd is True
        assert result.is_npd is False

    def test_npd_marker_is_not_pd(self):
        result = analyze_image_filename("ang_NPD.jpg")
        assert result.is_pd is False
        assert result.is_npd is True

    def test_marker_must_be_delimited(self):
        result = analyze_image_filename("spdx.jpg")
        assert result.is_pd is False
        assert result.is_npd is False


class TestAnalyzeImages:
    """Tests for the combined diagnosis."""

    def test_pd_majority(self):
        summary = analyze_images(["hap_PD.jpg", "sad_PD.jpg", "ang_NPD.jpg"])
        assert summary.diagnosis == "PD"
        assert summary.confidence == 70

    def test_npd_majority_capped(self):
        files = [f"{e}_NPD.jpg" for e in ("ang", "dis", "fea", "hap", "sad", "sup")]
        summary = analyze_images(files)
        assert summary.diagnosis == "NPD"
        assert summary.confidence == 100

    def test_no_markers_uses_average(self):
        summary = analyze_images(["hap.jpg", "sad.jpg"])
        assert summary.diagnosis == "NPD"
        assert summary.confidence == 72.0

    def test_tie_uses_lower_factor(self):
        summary = analyze_images(["hap_PD.jpg", "sad_NPD.jpg"])
        assert summary.diagnosis == "NPD"
        assert summary.confidence == 68.0

    def test_emotion_scores_colors(self):
        summary = analyze_images(["sad+.jpg", "xyz.jpg"], patient_info={"name": "Ann"})
        assert summary.emotion_scores[0] == {"emotion": "Sadness", "score": 85, "color": "bg-chart-5"}
        assert summary.emotion_scores[1]["color"] == "bg-chart-2"
        assert summary.patient_info == {"name": "Ann"}

    def test_empty_input(self):
        summary = analyze_images([])
        assert summary.diagnosis == "NPD"
        assert summary.confidence == 50
