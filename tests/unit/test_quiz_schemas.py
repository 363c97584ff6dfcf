import json

import pytest
from pydantic import ValidationError

from cissp_mastery.schemas.quiz import (
    JUSTIFICATION_SCHEMA_VERSION,
    QuizJustifications,
    QuizQuestionCreate,
    QuizQuestionUpdate,
)
from tests.factories import sample_options


@pytest.mark.unit
class TestQuizJustifications:
    """Test versioned justification payloads"""

    def test_version_one_payload_is_upgraded(self):
        legacy = {
            "elimination_tactics": json.dumps({"Availability": "Not about secrecy"}),
            "correct_answer_with_justification": json.dumps({"Confidentiality": "Prevents disclosure"}),
            "compare_remaining_options_with_justification": "",
            "correct_options_justification": None,
        }
        upgraded = QuizJustifications.model_validate(legacy)

        assert upgraded.schema_version == JUSTIFICATION_SCHEMA_VERSION
        assert upgraded.elimination_tactics == {"Availability": "Not about secrecy"}
        assert upgraded.correct_answer_with_justification == {"Confidentiality": "Prevents disclosure"}
        assert upgraded.compare_remaining_options_with_justification == {}
        assert upgraded.correct_options_justification == {}

    def test_version_one_accepts_already_decoded_objects(self):
        upgraded = QuizJustifications.model_validate({"elimination_tactics": {"A": "because"}})
        assert upgraded.elimination_tactics == {"A": "because"}

    def test_current_version_passes_through(self):
        payload = {"schema_version": 2, "correct_options_justification": {"A": "right"}}
        parsed = QuizJustifications.model_validate(payload)
        assert parsed.correct_options_justification == {"A": "right"}
        assert parsed.elimination_tactics == {}

    def test_invalid_json_in_legacy_field(self):
        with pytest.raises(ValidationError):
            QuizJustifications.model_validate({"elimination_tactics": "{not json"})

    def test_legacy_field_must_decode_to_object(self):
        with pytest.raises(ValidationError):
            QuizJustifications.model_validate({"elimination_tactics": json.dumps(["a", "b"])})

    def test_future_version_rejected(self):
        with pytest.raises(ValidationError):
            QuizJustifications.model_validate({"schema_version": 3})

    def test_is_empty(self):
        assert QuizJustifications().is_empty()
        assert not QuizJustifications(elimination_tactics={"A": "x"}).is_empty()


@pytest.mark.unit
class TestQuizQuestionCreate:
    """Test quiz question validation"""

    def test_valid_question(self):
        question = QuizQuestionCreate(question_text="Which property does encryption protect?", options=sample_options())
        assert len(question.options) == 4
        assert question.justifications is None

    def test_requires_a_correct_option(self):
        options = [{"text": "A", "is_correct": False}, {"text": "B", "is_correct": False}]
        with pytest.raises(ValidationError, match="At least one correct answer"):
            QuizQuestionCreate(question_text="Q", options=options)

    def test_option_count_bounds(self):
        with pytest.raises(ValidationError):
            QuizQuestionCreate(question_text="Q", options=[{"text": "A", "is_correct": True}])
        too_many = [{"text": str(i), "is_correct": i == 0} for i in range(7)]
        with pytest.raises(ValidationError):
            QuizQuestionCreate(question_text="Q", options=too_many)

    def test_empty_question_text(self):
        with pytest.raises(ValidationError):
            QuizQuestionCreate(question_text="", options=sample_options())

    def test_update_checks_options_only_when_given(self):
        assert QuizQuestionUpdate(explanation="x").options is None
        with pytest.raises(ValidationError):
            QuizQuestionUpdate(options=[{"text": "A", "is_correct": False}, {"text": "B", "is_correct": False}])
