import pytest

from cissp_mastery.services.study_sessions import quiz_mastery_status


@pytest.mark.unit
class TestQuizMastery:
    """Test the quiz-score-to-mastery policy"""

    @pytest.mark.parametrize(
        "average,best,expected",
        [
            (80, 90, "mastered"),
            (95, 100, "mastered"),
            (79.9, 100, "learning"),
            (85, 89, "learning"),
            (60, 60, "learning"),
            (40, 70, "learning"),
            (59.9, 69.9, "new"),
            (0, 0, "new"),
        ],
    )
    def test_thresholds(self, average, best, expected):
        assert quiz_mastery_status(average, best) == expected
