"""
Content Records

Value records for generated reading content, quiz questions, saved essays and
curated recommendations. Records coming back from Supabase or the LLM are
plain dicts; `from_dict` tolerates missing optional keys.
"""

from dataclasses import dataclass, field, asdict
from typing import Optional, List, Dict, Any


@dataclass(frozen=True)
class Article:
    """A readable article, generated or curated."""
    id: str
    title: str
    read_time: str = "5 MIN READ"
    type: str = "article"  # News, Blog, Video, article, video
    content: List[str] = field(default_factory=list)  # Paragraphs
    category: Optional[str] = None
    time: Optional[str] = None
    url: Optional[str] = None
    image_url: Optional[str] = None
    level: Optional[str] = None
    snippet: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Article":
        content = data.get("content") or []
        if isinstance(content, str):
            content = [content]
        return cls(
            id=str(data.get("id", "")),
            title=data.get("title", ""),
            read_time=data.get("readTime") or data.get("read_time") or "5 MIN READ",
            type=data.get("type", "article"),
            content=list(content),
            category=data.get("category"),
            time=data.get("time"),
            url=data.get("url"),
            image_url=data.get("imageUrl") or data.get("image_url"),
            level=data.get("level"),
            snippet=data.get("snippet"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "readTime": self.read_time,
            "type": self.type,
            "content": list(self.content),
            "category": self.category,
            "time": self.time,
            "url": self.url,
            "imageUrl": self.image_url,
            "level": self.level,
            "snippet": self.snippet,
        }


@dataclass(frozen=True)
class QuestionOption:
    id: int
    label: str
    text: str


@dataclass(frozen=True)
class Question:
    """Multiple-choice comprehension question (four labeled options)."""
    id: int
    text: str
    options: List[QuestionOption]
    correct_id: int
    explanation: str = ""

    def option(self, option_id: Optional[int]) -> Optional[QuestionOption]:
        for opt in self.options:
            if opt.id == option_id:
                return opt
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Question":
        options = [
            QuestionOption(id=int(o["id"]), label=str(o.get("label", "")), text=str(o.get("text", "")))
            for o in data.get("options") or []
        ]
        return cls(
            id=int(data["id"]),
            text=data.get("text", ""),
            options=options,
            correct_id=int(data.get("correctId", data.get("correct_id"))),
            explanation=data.get("explanation", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "correctId": self.correct_id,
            "explanation": self.explanation,
            "options": [asdict(o) for o in self.options],
        }


@dataclass(frozen=True)
class GeneratedLesson:
    """Article plus its ordered question list."""
    article: Article
    questions: List[Question] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeneratedLesson":
        return cls(
            article=Article.from_dict(data["article"]),
            questions=[Question.from_dict(q) for q in data.get("questions") or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "article": self.article.to_dict(),
            "questions": [q.to_dict() for q in self.questions],
        }


@dataclass(frozen=True)
class Essay:
    """A saved writing sample with its (JSON-serialized) analyses."""
    id: str
    user_id: str
    content: str
    created_at: str
    file_url: Optional[str] = None
    ai_style_analysis: Optional[str] = None
    ai_evaluation: Optional[str] = None
    ai_improvement: Optional[str] = None
    ai_refinement: Optional[str] = None
    ai_followup: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Essay":
        return cls(
            id=str(data.get("id", "")),
            user_id=str(data.get("user_id", "")),
            content=data.get("content", ""),
            created_at=data.get("created_at", ""),
            file_url=data.get("file_url"),
            ai_style_analysis=data.get("ai_style_analysis"),
            ai_evaluation=data.get("ai_evaluation"),
            ai_improvement=data.get("ai_improvement"),
            ai_refinement=data.get("ai_refinement"),
            ai_followup=data.get("ai_followup"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RecommendedArticle:
    """Row of the curated `recommended_articles` table."""
    id: str
    title: str
    url: str = ""
    type: str = "News"
    article_id: Optional[str] = None
    source: Optional[str] = None
    image_url: Optional[str] = None
    level: Optional[str] = None
    snippet: Optional[str] = None
    published_at: Optional[str] = None
    pulled_at: Optional[str] = None
    is_pushed_to_client: bool = False
    pushed_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecommendedArticle":
        return cls(
            id=str(data.get("id", "")),
            title=data.get("title", ""),
            url=data.get("url") or "",
            type=data.get("type", "News"),
            article_id=data.get("article_id"),
            source=data.get("source"),
            image_url=data.get("image_url"),
            level=data.get("level"),
            snippet=data.get("snippet"),
            published_at=data.get("published_at"),
            pulled_at=data.get("pulled_at"),
            is_pushed_to_client=bool(data.get("is_pushed_to_client", False)),
            pushed_at=data.get("pushed_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class QuizAttempt:
    """Quiz attempt joined with the article it was taken on."""
    id: str
    score: int
    total_questions: int
    created_at: str
    article: Article

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuizAttempt":
        article_row = data.get("articles") or {}
        article = Article.from_dict({
            "id": article_row.get("id", ""),
            "title": article_row.get("title", ""),
            "content": article_row.get("content") or [],
            "type": "article",  # Default type for history items
            "level": article_row.get("level"),
            "readTime": "5 MIN",
            "url": "",
        })
        return cls(
            id=str(data.get("id", "")),
            score=int(data.get("score") or 0),
            total_questions=int(data.get("total_questions") or 0),
            created_at=data.get("created_at", ""),
            article=article,
        )
