"""
Tutor AI Tasks

Lesson generation, recommendation generation, education news and tutor chat
on top of the chat-completion client. JSON-contracted calls never raise:
missing keys, transport failures and malformed payloads all fall back to
fixed placeholder content.
"""

import json
import logging
import random
import re
import time
from typing import Any, Dict, List, Optional

from ai_english_tutor import prompts
from ai_english_tutor.exceptions import ConfigurationError, LLMError
from ai_english_tutor.llm_client import LLMClient, Message
from ai_english_tutor.models import Article, GeneratedLesson, Question, QuestionOption

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"```(?:json)?", re.IGNORECASE)

CHAT_NO_KEY_REPLY = "Sorry, I can't connect to the AI right now. Please check your API key."
CHAT_FAILURE_REPLY = "I'm having trouble thinking right now. Please try again."


def parse_json_payload(text: str) -> Any:
    """Parse a JSON reply, tolerating markdown code fences around it."""
    cleaned = _FENCE_PATTERN.sub("", text).strip()
    return json.loads(cleaned)


def missing_key_lesson() -> GeneratedLesson:
    return GeneratedLesson(
        article=Article(
            id="fallback-no-key",
            title="API Key Missing",
            read_time="1 MIN READ",
            type="article",
            content=[
                "Please configure your .env file with a valid DEEPSEEK_API_KEY to generate real content.",
                "This is a placeholder lesson.",
            ],
        ),
        questions=[],
    )


def fallback_lesson() -> GeneratedLesson:
    return GeneratedLesson(
        article=Article(
            id="fallback",
            title="The Evolution of Language (Fallback)",
            read_time="3 MIN READ",
            type="article",
            content=[
                "Language is a dynamic and ever-evolving system of communication. Over centuries, English "
                "has transformed through cultural exchange, technological advancement, and social shifts.",
                "Modern English continues to integrate new terminology from the digital age while "
                "maintaining its foundational Germanic and Latin roots.",
            ],
        ),
        questions=[
            Question(
                id=1,
                text="What is the main driver of change mentioned?",
                correct_id=1,
                explanation="The text mentions cultural exchange and technology.",
                options=[
                    QuestionOption(id=1, label="A", text="Cultural exchange"),
                    QuestionOption(id=2, label="B", text="Static rules"),
                    QuestionOption(id=3, label="C", text="Isolation"),
                    QuestionOption(id=4, label="D", text="None of above"),
                ],
            )
        ],
    )


class TutorAI:
    """LLM-backed content tasks for the reading coach, feeds and chat."""

    LESSON_TEMPERATURE = 1.1  # Slightly creative

    def __init__(self, llm: LLMClient):
        self.llm = llm

    async def generate_reading_lesson(self, level: str, topic: Optional[str] = None) -> GeneratedLesson:
        """
        Generate a reading lesson (article + ordered questions).

        Args:
            level: CEFR-style level, e.g. "B2"
            topic: Lesson topic (random pick from LESSON_TOPICS if None)

        Returns:
            GeneratedLesson, or a placeholder lesson on any failure
        """
        if not self.llm.configured:
            logger.error("❌ [TutorAI] DeepSeek API Key is missing.")
            return missing_key_lesson()

        selected_topic = topic or random.choice(prompts.LESSON_TOPICS)
        article_id = f"gen-{int(time.time() * 1000)}"
        logger.info(f"📚 [TutorAI] Generating {level} lesson on '{selected_topic}'")

        try:
            content = await self.llm.complete(
                prompts.JSON_TUTOR_SYSTEM_PROMPT,
                prompts.lesson_prompt(level, selected_topic, article_id),
                temperature=self.LESSON_TEMPERATURE,
            )
            lesson = GeneratedLesson.from_dict(parse_json_payload(content))
        except (LLMError, ConfigurationError, ValueError, KeyError, TypeError) as e:
            # json.JSONDecodeError is a ValueError
            logger.error(f"❌ [TutorAI] AI Generation failed: {e}")
            return fallback_lesson()

        logger.info(f"✅ [TutorAI] Lesson ready: '{lesson.article.title}' ({len(lesson.questions)} questions)")
        return lesson

    async def generate_recommendations(self, level: str) -> List[Article]:
        """Generate five News/Blog recommendations; empty list on any failure."""
        if not self.llm.configured:
            return []
        try:
            content = await self.llm.complete(
                prompts.JSON_TUTOR_SYSTEM_PROMPT,
                prompts.recommendations_prompt(level),
            )
            return self._parse_article_list(content)
        except (LLMError, ConfigurationError, ValueError, KeyError, TypeError) as e:
            logger.error(f"❌ [TutorAI] Recommendation Generation failed: {e}")
            return []

    async def send_chat_message(self, history: List[Message]) -> str:
        """
        Reply to a chat conversation.

        Args:
            history: Full conversation as role/content dicts (user/assistant)

        Returns:
            Assistant reply, or a fixed apology when the LLM is unavailable
        """
        if not self.llm.configured:
            return CHAT_NO_KEY_REPLY
        try:
            return await self.llm.complete(prompts.CHAT_SYSTEM_PROMPT, history)
        except (LLMError, ConfigurationError) as e:
            logger.error(f"❌ [TutorAI] Chat Error: {e}")
            return CHAT_FAILURE_REPLY

    @staticmethod
    def _parse_article_list(content: str) -> List[Article]:
        payload = parse_json_payload(content)
        if not isinstance(payload, list):
            raise ValueError("Expected a JSON array of articles")
        articles = []
        for index, item in enumerate(payload):
            if not isinstance(item, dict):
                continue
            data: Dict[str, Any] = dict(item)
            data.setdefault("id", f"rec-{index + 1}")
            articles.append(Article.from_dict(data))
        return articles
