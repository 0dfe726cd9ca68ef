"""
Reading Coach

Generated reading lesson with a multiple-choice quiz. The last lesson and
the in-progress answers live in the local store so a reload resumes the same
quiz; a new lesson clears the saved answers.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ai_english_tutor.auth_service import AuthService
from ai_english_tutor.content_repository import ContentRepository
from ai_english_tutor.exceptions import TutorError
from ai_english_tutor.local_store import LAST_ANSWERS_KEY, LAST_LESSON_KEY, LocalStore
from ai_english_tutor.models import GeneratedLesson, Question
from ai_english_tutor.tutor_ai import TutorAI

logger = logging.getLogger(__name__)

DEFAULT_LEVEL = "B2"


@dataclass
class QuestionReview:
    question: Question
    selected_id: Optional[int]
    is_correct: bool

    @property
    def correct_text(self) -> str:
        option = self.question.option(self.question.correct_id)
        return option.text if option else ""


@dataclass
class QuizAnalysis:
    correct: int
    total: int
    reviews: List[QuestionReview] = field(default_factory=list)

    @property
    def percentage(self) -> int:
        if self.total == 0:
            return 0
        # JS Math.round semantics (half rounds up)
        return int(self.correct * 100 / self.total + 0.5)

    @property
    def headline(self) -> str:
        if self.percentage == 100:
            return "Perfect!"
        return "Great effort!" if self.percentage >= 60 else "Keep practicing!"

    @property
    def summary(self) -> str:
        if self.percentage == 100:
            return "You've mastered this article."
        return "Review the answers below to improve."


@dataclass
class SubmitResult:
    analysis: QuizAnalysis
    persisted: bool = False


def score_answers(lesson: GeneratedLesson, answers: Dict[int, int]) -> QuizAnalysis:
    reviews = []
    for index, question in enumerate(lesson.questions):
        selected = answers.get(index)
        reviews.append(QuestionReview(question=question, selected_id=selected, is_correct=selected == question.correct_id))
    return QuizAnalysis(
        correct=sum(1 for review in reviews if review.is_correct),
        total=len(lesson.questions),
        reviews=reviews,
    )


class ReadingCoach:
    """Quiz flow over one generated lesson."""

    def __init__(
        self,
        ai: TutorAI,
        repository: ContentRepository,
        auth: AuthService,
        store: LocalStore,
        level: str = DEFAULT_LEVEL
    ):
        self.ai = ai
        self.repository = repository
        self.auth = auth
        self.store = store
        self.level = level
        self.lesson: Optional[GeneratedLesson] = None
        self.answers: Dict[int, int] = {}
        self.current_index = 0

    async def load_lesson(self) -> GeneratedLesson:
        """Resume the stored lesson, or generate and store a new one."""
        cached = self.store.get(LAST_LESSON_KEY)
        if cached is not None:
            try:
                self.lesson = GeneratedLesson.from_dict(cached)
                self.answers = self._load_answers()
                self.current_index = 0
                logger.info(f"♻️ [ReadingCoach] Resuming lesson '{self.lesson.article.title}'")
                return self.lesson
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"⚠️ [ReadingCoach] Dropping unreadable cached lesson: {e}")
                self.store.remove(LAST_LESSON_KEY)

        self.lesson = await self.ai.generate_reading_lesson(self.level)
        self.store.set(LAST_LESSON_KEY, self.lesson.to_dict())
        self.store.remove(LAST_ANSWERS_KEY)
        self.answers = {}
        self.current_index = 0
        return self.lesson

    def _load_answers(self) -> Dict[int, int]:
        raw = self.store.get(LAST_ANSWERS_KEY) or {}
        return {int(index): int(option_id) for index, option_id in raw.items()}

    @property
    def current_question(self) -> Optional[Question]:
        if not self.lesson or not self.lesson.questions:
            return None
        return self.lesson.questions[self.current_index]

    @property
    def selected_answer(self) -> Optional[int]:
        return self.answers.get(self.current_index)

    @property
    def is_last_question(self) -> bool:
        return self.lesson is not None and self.current_index >= len(self.lesson.questions) - 1

    def select_answer(self, option_id: int, question_index: Optional[int] = None) -> None:
        index = self.current_index if question_index is None else question_index
        self.answers[index] = option_id
        self.store.set(LAST_ANSWERS_KEY, {str(k): v for k, v in self.answers.items()})

    async def next_question(self) -> Optional[SubmitResult]:
        """
        Advance to the next question; on the last one, submit the quiz.

        Returns:
            SubmitResult when the quiz was submitted, else None
        """
        if self.lesson is None:
            return None
        if not self.is_last_question:
            self.current_index += 1
            return None
        return await self.submit()

    async def submit(self) -> SubmitResult:
        """Score the quiz and record the attempt for a signed-in user."""
        if self.lesson is None:
            raise ValueError("No lesson loaded")

        analysis = score_answers(self.lesson, self.answers)
        persisted = False
        try:
            user_id = await self.auth.get_user_id()
            if user_id:
                article_row = await self.repository.insert_article(
                    title=self.lesson.article.title,
                    content=self.lesson.article.content,
                    level=self.level,
                )
                await self.repository.insert_quiz_attempt(
                    user_id=user_id,
                    article_id=article_row["id"],
                    score=analysis.correct,
                    total_questions=analysis.total,
                    user_answers=self.answers,
                )
                persisted = True
        except (TutorError, KeyError) as e:
            logger.error(f"❌ [ReadingCoach] Failed to save progress: {e}")

        logger.info(f"📝 [ReadingCoach] Quiz submitted: {analysis.correct}/{analysis.total}")
        return SubmitResult(analysis=analysis, persisted=persisted)

    def analysis(self) -> Optional[QuizAnalysis]:
        """Score of the stored lesson and answers (what the analysis screen shows)."""
        cached = self.store.get(LAST_LESSON_KEY)
        if cached is None:
            return None
        return score_answers(GeneratedLesson.from_dict(cached), self._load_answers())

    def new_lesson(self) -> None:
        self.store.remove(LAST_LESSON_KEY)
        self.lesson = None
        self.answers = {}
        self.current_index = 0
