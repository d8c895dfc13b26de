"""
Tests for the quiz service
"""

import asyncio

import pytest

from services.chat_service.personas import PersonaType
from services.chat_service.repository import PersistenceError
from services.quiz_service.quiz_data import QUIZZES
from services.quiz_service.quiz_manager import (
    QuizService, QuizSession, get_quiz, quiz_feedback, quiz_result_message
)


class TestQuizData:

    def test_every_persona_has_a_quiz(self):
        assert set(QUIZZES) == set(PersonaType)

    def test_answers_are_valid_options(self):
        for quiz in QUIZZES.values():
            for question in quiz.questions:
                assert 0 <= question.correct_answer_index < len(question.options)

    def test_get_quiz_by_display_name(self):
        assert get_quiz("Waste Wizard") is QUIZZES[PersonaType.WASTE]


class TestQuizSession:

    def test_score_counts_correct_answers(self):
        session = QuizSession.start("greenbot")
        for question in session.questions:
            session.answer(question.correct_answer_index)

        assert session.is_complete
        assert session.current_question is None
        assert session.score == session.total

    def test_wrong_answer(self):
        session = QuizSession.start("greenbot")
        question = session.current_question
        wrong = (question.correct_answer_index + 1) % len(question.options)

        result = session.answer(wrong)

        assert result.is_correct is False
        assert session.score == 0

    def test_out_of_range_answer(self):
        session = QuizSession.start("greenbot")
        with pytest.raises(ValueError):
            session.answer(99)

    def test_answer_after_completion(self):
        session = QuizSession.start("greenbot")
        for _ in range(session.total):
            session.answer(0)
        with pytest.raises(ValueError):
            session.answer(0)


class TestQuizMessages:

    def test_passing_result_message(self):
        assert quiz_result_message(3, 3) == (
            "You've completed the quiz with a score of 3/3! "
            "Great job! You have a solid understanding of this topic."
        )

    def test_failing_result_message(self):
        assert quiz_result_message(1, 3).endswith(
            "Keep learning! There's always more to discover about sustainability."
        )

    def test_feedback(self):
        assert quiz_feedback(3, 3) == "Perfect score! You're an expert!"
        assert quiz_feedback(0, 3) == "Keep learning! Every step counts."


class TestQuizService:

    def test_save_and_fetch_history(self, supabase_client, auth_service):
        auth_service.sign_in_as("user-1")
        service = QuizService(supabase_client, auth_service)

        asyncio.run(service.save_session("GreenBot", 2, 3))
        history = asyncio.run(service.get_history())

        assert len(history) == 1
        assert history[0]["score"] == 2
        assert history[0]["total_questions"] == 3

    def test_save_requires_sign_in(self, supabase_client, auth_service):
        service = QuizService(supabase_client, auth_service)

        with pytest.raises(PersistenceError):
            asyncio.run(service.save_session("GreenBot", 2, 3))

    def test_save_response(self, supabase_client, auth_service):
        auth_service.sign_in_as("user-1")
        service = QuizService(supabase_client, auth_service)

        asyncio.run(service.save_response("greenbot-1", "Reusable bags", True))

        assert supabase_client.tables["quiz_responses"][0]["user_id"] == "user-1"
        assert supabase_client.tables["quiz_responses"][0]["question_id"] == "greenbot-1"
        assert supabase_client.tables["quiz_responses"][0]["selected_answer"] == "Reusable bags"
        assert supabase_client.tables["quiz_responses"][0]["is_correct"] is True

    def test_save_response_requires_sign_in(self, supabase_client, auth_service):
        service = QuizService(supabase_client, auth_service)

        with pytest.raises(PersistenceError):
            asyncio.run(service.save_response("greenbot-1", "Reusable bags", True))
        assert "quiz_responses" not in supabase_client.tables

    def test_save_response_failure_raises_persistence_error(self, supabase_client, auth_service):
        auth_service.sign_in_as("user-1")
        supabase_client.failures.add(("quiz_responses", "insert"))
        service = QuizService(supabase_client, auth_service)

        with pytest.raises(PersistenceError):
            asyncio.run(service.save_response("greenbot-1", "Reusable bags", False))


if __name__ == "__main__":
    pytest.main([__file__])
