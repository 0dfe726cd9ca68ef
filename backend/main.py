"""
FastAPI host for the AI English Tutor

Runs one TutorApp (one client's navigation, writing, reading and chat state)
behind a small REST API:
- Navigation and auth gating
- Writing coach phases and essay saving
- Recommended content and daily recommendations
- Reading lessons, quiz submission and history
- Tutor chat
"""

from fastapi import FastAPI, HTTPException, Depends
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from typing import Optional, Dict, Any
import os
import sys
import time
import signal

# Add the ai_english_tutor package to Python path
backend_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(backend_dir)
package_src = os.path.join(project_root, 'ai_english_tutor', 'src')
if os.path.exists(package_src) and package_src not in sys.path:
    sys.path.insert(0, package_src)

from lib.logger import setup_logging, get_logger

from ai_english_tutor.app import TutorApp
from ai_english_tutor.config import Settings
from ai_english_tutor.exceptions import ConfigurationError, RecommendedContentError
from ai_english_tutor.navigation import ViewState
from ai_english_tutor.writing_pipeline import Phase

from lib.supabase_client import get_supabase_client

settings = Settings.from_env()
setup_logging(level=settings.log_level, use_colors=True)
logger = get_logger("backend.main")

_tutor_app: Optional[TutorApp] = None


def get_tutor_app() -> TutorApp:
    """Get or create the singleton TutorApp."""
    global _tutor_app
    if _tutor_app is None:
        try:
            supabase = get_supabase_client(settings)
        except ConfigurationError as e:
            logger.warning("Supabase not configured - auth and persistence disabled", data={"error": str(e)})
            supabase = None
        _tutor_app = TutorApp.from_settings(settings, supabase_client=supabase)
    return _tutor_app


def require_session(tutor: TutorApp = Depends(get_tutor_app)) -> TutorApp:
    """
    Gate for the protected writing and reading coach endpoints.

    Raises:
        HTTPException: 401 when no session is present
    """
    if not tutor.state.has_session:
        raise HTTPException(status_code=401, detail="Sign in required")
    return tutor


app = FastAPI(
    title="AI English Tutor API",
    description="Navigation, writing coach, reading coach and recommended content for one tutor client",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ==================== Pydantic Models ====================

class NavigateRequest(BaseModel):
    view: str


class Credentials(BaseModel):
    email: str
    password: str


class AuthResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    state: Dict[str, Any]


class DraftRequest(BaseModel):
    text: str


class FileRequest(BaseModel):
    filename: str
    content: str
    content_type: Optional[str] = None


class PhaseResponse(BaseModel):
    phase: str
    text: Optional[str] = None
    from_cache: bool = False
    error: Optional[str] = None
    discarded: bool = False
    message: str = ""


class MessageResponse(BaseModel):
    success: bool
    message: str


class AnswerRequest(BaseModel):
    option_id: int
    question_index: Optional[int] = None


class ChatRequest(BaseModel):
    content: str


# ==================== Helper Functions ====================

def _view_or_422(name: str) -> ViewState:
    try:
        return ViewState(name)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Unknown view '{name}'")


def _lesson_payload(tutor: TutorApp) -> Dict[str, Any]:
    reading = tutor.reading
    question = reading.current_question
    return {
        "lesson": reading.lesson.to_dict() if reading.lesson else None,
        "current_index": reading.current_index,
        "current_question": question.to_dict() if question else None,
        "selected_answer": reading.selected_answer,
        "answers": {str(k): v for k, v in reading.answers.items()},
    }


def _analysis_payload(analysis) -> Dict[str, Any]:
    return {
        "correct": analysis.correct,
        "total": analysis.total,
        "percentage": analysis.percentage,
        "headline": analysis.headline,
        "summary": analysis.summary,
        "reviews": [
            {
                "question": review.question.text,
                "selected_id": review.selected_id,
                "is_correct": review.is_correct,
                "correct_answer": review.correct_text,
                "explanation": review.question.explanation,
            }
            for review in analysis.reviews
        ],
    }


# ==================== API Endpoints ====================

@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "AI English Tutor API",
        "version": "1.0.0",
        "supabase_configured": settings.supabase_configured,
        "llm_configured": settings.llm_configured,
    }


@app.get("/api/state")
async def get_state(tutor: TutorApp = Depends(get_tutor_app)):
    return tutor.snapshot()


@app.post("/api/navigate")
async def navigate(request: NavigateRequest, tutor: TutorApp = Depends(get_tutor_app)):
    logger.request("POST", "/api/navigate", data={"view": request.view})
    tutor.navigate(_view_or_422(request.view))
    return tutor.snapshot()


@app.post("/api/back")
async def go_back(tutor: TutorApp = Depends(get_tutor_app)):
    tutor.go_back()
    return tutor.snapshot()


# ---------- Auth ----------

@app.post("/api/auth/sign-in", response_model=AuthResponse)
async def sign_in(credentials: Credentials, tutor: TutorApp = Depends(get_tutor_app)):
    result = await tutor.sign_in(credentials.email, credentials.password)
    return AuthResponse(success=result.success, message=result.message, error=result.error, state=tutor.snapshot())


@app.post("/api/auth/sign-up", response_model=AuthResponse)
async def sign_up(credentials: Credentials, tutor: TutorApp = Depends(get_tutor_app)):
    result = await tutor.sign_up(credentials.email, credentials.password)
    return AuthResponse(success=result.success, message=result.message, error=result.error, state=tutor.snapshot())


@app.get("/api/auth/callback")
async def auth_callback(
    code: Optional[str] = None,
    error_description: Optional[str] = None,
    tutor: TutorApp = Depends(get_tutor_app)
):
    """Email-confirmation / PKCE redirect target."""
    await tutor.handle_auth_callback(code=code, error_description=error_description)
    return tutor.snapshot()


@app.post("/api/auth/sign-out")
async def sign_out(tutor: TutorApp = Depends(get_tutor_app)):
    try:
        await tutor.sign_out()
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return tutor.snapshot()


# ---------- Writing coach ----------

@app.get("/api/writing")
async def get_writing(tutor: TutorApp = Depends(require_session)):
    return tutor.writing.snapshot()


@app.put("/api/writing/draft")
async def set_draft(request: DraftRequest, tutor: TutorApp = Depends(require_session)):
    tutor.writing.set_draft(request.text)
    return tutor.writing.snapshot()


@app.post("/api/writing/file", response_model=MessageResponse)
async def load_file(request: FileRequest, tutor: TutorApp = Depends(require_session)):
    loaded = tutor.writing.load_file(request.filename, request.content, request.content_type)
    return MessageResponse(success=loaded, message=tutor.writing.message)


@app.post("/api/writing/complete", response_model=MessageResponse)
async def input_complete(tutor: TutorApp = Depends(require_session)):
    message = tutor.writing.input_complete()
    return MessageResponse(success=bool(tutor.writing.draft.strip()), message=message)


@app.post("/api/writing/phases/{phase}", response_model=PhaseResponse)
async def run_phase(phase: str, tutor: TutorApp = Depends(require_session)):
    try:
        selected = Phase(phase.lower())
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown phase '{phase}'")

    start_time = time.time()
    result = await tutor.writing.run_phase(selected)
    logger.response(200, f"/api/writing/phases/{selected.value}", duration=time.time() - start_time)
    return PhaseResponse(
        phase=result.phase.value,
        text=result.text,
        from_cache=result.from_cache,
        error=result.error,
        discarded=result.discarded,
        message=tutor.writing.message,
    )


@app.post("/api/writing/close")
async def close_result(tutor: TutorApp = Depends(require_session)):
    tutor.writing.close_result()
    return tutor.writing.snapshot()


@app.post("/api/writing/save", response_model=MessageResponse)
async def save_essay(tutor: TutorApp = Depends(require_session)):
    result = await tutor.writing.save()
    return MessageResponse(success=result.saved, message=result.message)


@app.get("/api/writing/history")
async def writing_history(tutor: TutorApp = Depends(get_tutor_app)):
    essays = await tutor.essay_history()
    return {"essays": [essay.to_dict() for essay in essays]}


# ---------- Recommended content ----------

@app.get("/api/recommended")
async def recommended(tutor: TutorApp = Depends(get_tutor_app)):
    try:
        entry = await tutor.recommended.get()
    except RecommendedContentError as e:
        logger.error("Recommended content fetch failed", error=e)
        raise HTTPException(status_code=503, detail=str(e))
    return entry.to_dict()


@app.get("/api/recommendations/daily")
async def daily_recommendations(level: str = "B2", tutor: TutorApp = Depends(get_tutor_app)):
    articles = await tutor.daily_recommendations.get(level)
    return {"articles": [article.to_dict() for article in articles]}


# ---------- Reading coach ----------

@app.get("/api/reading/lesson")
async def reading_lesson(tutor: TutorApp = Depends(require_session)):
    if tutor.reading.lesson is None:
        await tutor.reading.load_lesson()
    return _lesson_payload(tutor)


@app.post("/api/reading/answer")
async def reading_answer(request: AnswerRequest, tutor: TutorApp = Depends(require_session)):
    if tutor.reading.lesson is None:
        raise HTTPException(status_code=404, detail="No lesson loaded")
    tutor.reading.select_answer(request.option_id, request.question_index)
    return _lesson_payload(tutor)


@app.post("/api/reading/submit")
async def reading_submit(tutor: TutorApp = Depends(require_session)):
    """Advance to the next question, or submit on the last one."""
    if tutor.reading.lesson is None:
        raise HTTPException(status_code=404, detail="No lesson loaded")
    result = await tutor.submit_answer()
    payload = _lesson_payload(tutor)
    payload["submitted"] = result is not None
    payload["analysis"] = _analysis_payload(result.analysis) if result else None
    payload["state"] = tutor.snapshot()
    return payload


@app.get("/api/reading/analysis")
async def reading_analysis(tutor: TutorApp = Depends(require_session)):
    analysis = tutor.reading.analysis()
    if analysis is None:
        raise HTTPException(status_code=404, detail="No quiz to analyze")
    return _analysis_payload(analysis)


@app.post("/api/reading/new")
async def reading_new(tutor: TutorApp = Depends(require_session)):
    await tutor.new_lesson()
    payload = _lesson_payload(tutor)
    payload["state"] = tutor.snapshot()
    return payload


# ---------- History ----------

@app.get("/api/history")
async def quiz_history(tutor: TutorApp = Depends(get_tutor_app)):
    attempts = await tutor.quiz_history()
    return {
        "attempts": [
            {
                "id": attempt.id,
                "score": attempt.score,
                "total_questions": attempt.total_questions,
                "created_at": attempt.created_at,
                "article": attempt.article.to_dict(),
            }
            for attempt in attempts
        ]
    }


@app.post("/api/history/{attempt_id}/read")
async def read_again(attempt_id: str, tutor: TutorApp = Depends(get_tutor_app)):
    if tutor.read_again(attempt_id) is None:
        raise HTTPException(status_code=404, detail="Attempt not found")
    return tutor.snapshot()


# ---------- Chat ----------

@app.get("/api/chat")
async def chat_messages(tutor: TutorApp = Depends(get_tutor_app)):
    session = await tutor.open_chat()
    return {"messages": [m.to_dict() for m in session.messages]}


@app.post("/api/chat")
async def chat(request: ChatRequest, tutor: TutorApp = Depends(get_tutor_app)):
    session = await tutor.open_chat()
    reply = await session.send(request.content)
    return {"reply": reply.to_dict(), "messages": [m.to_dict() for m in session.messages]}


@app.on_event("startup")
async def startup_event():
    """Startup event - probe the current session."""
    tutor = get_tutor_app()
    await tutor.start()
    logger.success("Tutor started", data={"view": tutor.state.current_view.value})


@app.on_event("shutdown")
async def shutdown_event():
    if _tutor_app is not None:
        _tutor_app.stop()
        logger.info("🛑 Tutor stopped")


if __name__ == "__main__":
    import uvicorn

    def handle_exit(*args):
        """Handle graceful shutdown."""
        logger.info("🛑 Server shutdown (signal received)")
        sys.exit(0)

    signal.signal(signal.SIGINT, handle_exit)
    signal.signal(signal.SIGTERM, handle_exit)

    try:
        uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
    except KeyboardInterrupt:
        logger.info("🛑 Server stopped.")
        sys.exit(0)
