"""
Quiz service - runs a persona quiz and records answers and finished sessions for signed-in users.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from services.auth_service.auth_manager import AuthService
from services.chat_service.personas import PersonaType, get_persona
from services.chat_service.repository import PersistenceError
from services.quiz_service.quiz_data import QUIZZES, Quiz, QuizQuestion
from utils.logging_config import get_logger


def get_quiz(persona: Union[PersonaType, str, None]) -> Quiz:
    return QUIZZES[get_persona(persona).id]


def quiz_result_message(score: int, total: int) -> str:
    """Chat message posted when a quiz is finished"""
    verdict = (
        "Great job! You have a solid understanding of this topic."
        if score >= total * 0.7
        else "Keep learning! There's always more to discover about sustainability."
    )
    return f"You've completed the quiz with a score of {score}/{total}! {verdict}"


def quiz_feedback(score: int, total: int) -> str:
    """Short rating shown on the quiz results screen"""
    if total and score == total:
        return "Perfect score! You're an expert!"
    if score >= total * 0.8:
        return "Excellent work! You know your stuff."
    if score >= total * 0.6:
        return "Good effort! You're on the right track."
    return "Keep learning! Every step counts."


@dataclass
class QuizAnswer:
    question_id: str
    selected_index: int
    is_correct: bool


@dataclass
class QuizSession:
    """Progress through one quiz"""
    persona: PersonaType
    questions: List[QuizQuestion]
    answers: List[QuizAnswer] = field(default_factory=list)

    @classmethod
    def start(cls, persona: Union[PersonaType, str, None]) -> 'QuizSession':
        resolved = get_persona(persona).id
        return cls(persona=resolved, questions=list(QUIZZES[resolved].questions))

    @property
    def current_question(self) -> Optional[QuizQuestion]:
        if self.is_complete:
            return None
        return self.questions[len(self.answers)]

    @property
    def is_complete(self) -> bool:
        return len(self.answers) >= len(self.questions)

    @property
    def score(self) -> int:
        return sum(1 for answer in self.answers if answer.is_correct)

    @property
    def total(self) -> int:
        return len(self.questions)

    def answer(self, selected_index: int) -> QuizAnswer:
        question = self.current_question
        if question is None:
            raise ValueError("Quiz is already complete")
        if not 0 <= selected_index < len(question.options):
            raise ValueError(f"Answer index out of range: {selected_index}")

        result = QuizAnswer(
            question_id=question.id,
            selected_index=selected_index,
            is_correct=selected_index == question.correct_answer_index,
        )
        self.answers.append(result)
        return result


class QuizService:
    """
    Saves quiz answers to `quiz_responses` and finished sessions to `quiz_sessions`.
    """

    def __init__(self, client: Any, auth_service: AuthService):
        self.client = client
        self.auth_service = auth_service
        self.logger = get_logger(__name__)

    def _require_user(self) -> str:
        user_id = self.auth_service.user_id
        if not user_id:
            raise PersistenceError("User not authenticated")
        return user_id

    async def save_session(self, persona: str, score: int, total: int) -> None:
        user_id = self._require_user()
        try:
            await (
                self.client.table("quiz_sessions")
                .insert({
                    "user_id": user_id,
                    "persona": persona,
                    "score": score,
                    "total_questions": total,
                })
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"Error saving quiz session: {e}") from e

        self.logger.info(f"Saved quiz session for {persona}: {score}/{total}")

    async def save_response(self, question_id: str, selected_answer: str, is_correct: bool) -> None:
        user_id = self._require_user()
        try:
            await (
                self.client.table("quiz_responses")
                .insert({
                    "user_id": user_id,
                    "question_id": question_id,
                    "selected_answer": selected_answer,
                    "is_correct": is_correct,
                })
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"Error saving quiz response: {e}") from e

    async def get_history(self) -> List[Dict[str, Any]]:
        user_id = self._require_user()
        try:
            response = await (
                self.client.table("quiz_sessions")
                .select("*")
                .eq("user_id", user_id)
                .order("created_at", desc=True)
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"Error fetching quiz history: {e}") from e
        return response.data or []
