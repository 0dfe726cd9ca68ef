"""
Writing Coach Pipeline

Five independent AI analysis phases over the current draft (style,
evaluation, improvement, refinement, follow-up questions), each cached by the
exact draft text it was computed from, plus saving the draft and its analyses
as one essay row.

Cache entries are content-addressed: key = (phase, sha256(draft)). A lookup
only reuses an entry whose stored snapshot equals the live draft verbatim.
"""

import hashlib
import json
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import PurePath
from typing import Callable, Dict, Optional, Tuple, Union

from ai_english_tutor import prompts
from ai_english_tutor.auth_service import AuthService
from ai_english_tutor.content_repository import ContentRepository
from ai_english_tutor.exceptions import ConfigurationError, LLMError, TutorError
from ai_english_tutor.llm_client import LLMClient

logger = logging.getLogger(__name__)

EMPTY_DRAFT_MESSAGE = "Please write something first!"
LOGIN_REQUIRED_MESSAGE = "You must be logged in to save."
SAVING_MESSAGE = "Saving..."
SAVED_MESSAGE = "Essay and analysis saved successfully!"
INPUT_COMPLETE_MESSAGE = "Input complete! You can now use AI tools to analyze your writing."
FILE_LOADED_MESSAGE = "File loaded!"

TEXT_FILE_SUFFIXES = {".txt", ".md"}


class Phase(Enum):
    STYLE = "style"
    EVALUATION = "evaluation"
    IMPROVEMENT = "improvement"
    REFINEMENT = "refinement"
    FOLLOWUP = "followup"


@dataclass(frozen=True)
class PhaseSpec:
    """How one phase talks to the LLM and how it is labeled."""
    label: str
    full_name: str
    system_prompt: str
    build_prompt: Callable[[str], str]
    failure_message: str
    essay_column: str


PHASES: Dict[Phase, PhaseSpec] = {
    Phase.STYLE: PhaseSpec(
        label="Style",
        full_name="Style Analyzer",
        system_prompt=prompts.STYLE_SYSTEM_PROMPT,
        build_prompt=prompts.style_prompt,
        failure_message="Failed to analyze style. Please try again.",
        essay_column="ai_style_analysis",
    ),
    Phase.EVALUATION: PhaseSpec(
        label="Evaluate",
        full_name="Evaluate Content",
        system_prompt=prompts.EVALUATION_SYSTEM_PROMPT,
        build_prompt=prompts.evaluation_prompt,
        failure_message="Failed to evaluate content. Please try again.",
        essay_column="ai_evaluation",
    ),
    Phase.IMPROVEMENT: PhaseSpec(
        label="Improvement",
        full_name="Improvement Suggestions",
        system_prompt=prompts.IMPROVEMENT_SYSTEM_PROMPT,
        build_prompt=prompts.improvement_prompt,
        failure_message="Failed to generate suggestions. Please try again.",
        essay_column="ai_improvement",
    ),
    Phase.REFINEMENT: PhaseSpec(
        label="Refiner",
        full_name="Content Refiner",
        system_prompt=prompts.REFINEMENT_SYSTEM_PROMPT,
        build_prompt=prompts.refinement_prompt,
        failure_message="Failed to refine content. Please try again.",
        essay_column="ai_refinement",
    ),
    Phase.FOLLOWUP: PhaseSpec(
        label="Followup",
        full_name="Follow-up Questions",
        system_prompt=prompts.FOLLOWUP_SYSTEM_PROMPT,
        # Follow-up needs context; built separately in WritingPipeline
        build_prompt=lambda sample: prompts.followup_prompt(sample, None, None),
        failure_message="Failed to generate follow-up questions. Please try again.",
        essay_column="ai_followup",
    ),
}


def draft_digest(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class PhaseResult:
    """One computed analysis and the exact draft it was computed from."""
    phase: Phase
    text: str
    snapshot: str
    digest: str
    created_at: datetime = field(default_factory=datetime.now)

    def is_fresh_for(self, draft: str) -> bool:
        return self.snapshot == draft


class AnalysisCache:
    """
    Content-addressed store of phase results.

    Besides the keyed entries, remembers the most recently produced (or
    reused) result per phase; that is what gets displayed, saved and passed
    to the follow-up phase as context.
    """

    def __init__(self, max_entries_per_phase: int = 20):
        self.max_entries_per_phase = max_entries_per_phase
        self._entries: "OrderedDict[Tuple[Phase, str], PhaseResult]" = OrderedDict()
        self._latest: Dict[Phase, PhaseResult] = {}

    def lookup(self, phase: Phase, draft: str) -> Optional[PhaseResult]:
        entry = self._entries.get((phase, draft_digest(draft)))
        if entry is None or not entry.is_fresh_for(draft):
            return None
        return entry

    def store(self, result: PhaseResult) -> None:
        key = (result.phase, result.digest)
        self._entries.pop(key, None)
        self._entries[key] = result
        self._latest[result.phase] = result
        self._evict(result.phase)

    def promote(self, result: PhaseResult) -> None:
        """Make a reused entry the current one for its phase."""
        self._entries.move_to_end((result.phase, result.digest))
        self._latest[result.phase] = result

    def latest(self, phase: Phase) -> Optional[PhaseResult]:
        return self._latest.get(phase)

    def latest_text(self, phase: Phase) -> Optional[str]:
        result = self._latest.get(phase)
        return result.text if result else None

    def __len__(self) -> int:
        return len(self._entries)

    def _evict(self, phase: Phase) -> None:
        keys = [k for k in self._entries if k[0] is phase]
        latest = self._latest.get(phase)
        for key in keys[:max(0, len(keys) - self.max_entries_per_phase)]:
            if latest is not None and key == (phase, latest.digest):
                continue
            del self._entries[key]


@dataclass
class PhaseRunResult:
    """What a `run_phase` call did."""
    phase: Phase
    text: Optional[str] = None
    from_cache: bool = False
    error: Optional[str] = None
    discarded: bool = False


@dataclass
class SaveResult:
    saved: bool
    message: str
    record: Optional[Dict[str, Optional[str]]] = None


class WritingPipeline:
    """
    Writing-coach state for one open editing session.

    Owns the draft, the analysis cache, which phase result is displayed and
    the user-facing status message.
    """

    def __init__(self, llm: LLMClient, repository: ContentRepository, auth: AuthService):
        self.llm = llm
        self.repository = repository
        self.auth = auth
        self.cache = AnalysisCache()
        self.active_phase: Optional[Phase] = None
        self.message: str = ""
        self.save_status: Optional[str] = None
        self._draft: str = ""
        self._failures: Dict[Phase, str] = {}
        self._tickets: Dict[Phase, int] = {}
        self._in_flight = 0

    # ==================== Draft ====================

    @property
    def draft(self) -> str:
        return self._draft

    def set_draft(self, text: str) -> None:
        self._draft = text

    @property
    def is_loading(self) -> bool:
        return self._in_flight > 0

    def load_file(self, filename: str, content: Union[str, bytes], content_type: Optional[str] = None) -> bool:
        """
        Replace the draft with an uploaded file. Only text files are accepted.

        Returns:
            True if the draft was replaced
        """
        suffix = PurePath(filename).suffix.lower()
        if not ((content_type and "text" in content_type) or suffix in TEXT_FILE_SUFFIXES):
            self.message = f"Selected file: {filename} (Only text files supported for now)"
            return False

        if isinstance(content, bytes):
            content = content.decode("utf-8", errors="replace")
        self._draft = content
        self.message = FILE_LOADED_MESSAGE
        return True

    def input_complete(self) -> str:
        self.message = EMPTY_DRAFT_MESSAGE if not self._draft.strip() else INPUT_COMPLETE_MESSAGE
        return self.message

    # ==================== Phases ====================

    async def run_phase(self, phase: Union[Phase, str]) -> PhaseRunResult:
        """
        Run (or reuse) one analysis phase for the current draft.

        Args:
            phase: Phase or its name ("style", "evaluation", ...)

        Returns:
            PhaseRunResult; failures are reported in it, never raised
        """
        phase = Phase(phase.lower()) if isinstance(phase, str) else phase
        spec = PHASES[phase]

        if not self._draft.strip():
            self.message = EMPTY_DRAFT_MESSAGE
            return PhaseRunResult(phase=phase, error=EMPTY_DRAFT_MESSAGE)

        # Any run, cached or not, supersedes calls still in flight
        ticket = self._tickets.get(phase, 0) + 1
        self._tickets[phase] = ticket

        cached = self.cache.lookup(phase, self._draft)
        if cached is not None:
            logger.info(f"♻️ [WritingPipeline] Using cached result for {spec.label}")
            self.cache.promote(cached)
            self._failures.pop(phase, None)
            self.active_phase = phase
            return PhaseRunResult(phase=phase, text=cached.text, from_cache=True)

        snapshot = self._draft
        self.active_phase = phase
        self.message = ""
        self._in_flight += 1

        logger.info(f"✍️ [WritingPipeline] Running {spec.label} ({len(snapshot)} chars)")
        try:
            text = await self._call_phase(phase, snapshot)
        except (LLMError, ConfigurationError) as e:
            logger.error(f"❌ [WritingPipeline] {spec.label} failed: {e}")
            if self._tickets.get(phase) != ticket:
                return PhaseRunResult(phase=phase, error=str(e), discarded=True)
            self._failures[phase] = spec.failure_message
            return PhaseRunResult(phase=phase, text=spec.failure_message, error=str(e))
        finally:
            self._in_flight -= 1

        if self._tickets.get(phase) != ticket:
            logger.info(f"⏭️ [WritingPipeline] Discarding superseded {spec.label} result")
            return PhaseRunResult(phase=phase, text=text, discarded=True)

        self.cache.store(PhaseResult(phase=phase, text=text, snapshot=snapshot, digest=draft_digest(snapshot)))
        self._failures.pop(phase, None)
        logger.info(f"✅ [WritingPipeline] {spec.label} complete")
        return PhaseRunResult(phase=phase, text=text)

    async def _call_phase(self, phase: Phase, sample: str) -> str:
        spec = PHASES[phase]
        if phase is Phase.FOLLOWUP:
            # Context is whatever style/evaluation hold now, fresh or not
            prompt = prompts.followup_prompt(
                sample,
                self.cache.latest_text(Phase.STYLE),
                self.cache.latest_text(Phase.EVALUATION),
            )
        else:
            prompt = spec.build_prompt(sample)
        return await self.llm.complete(spec.system_prompt, prompt)

    def result_text(self, phase: Phase) -> Optional[str]:
        return self.cache.latest_text(phase)

    def is_fresh(self, phase: Phase) -> bool:
        latest = self.cache.latest(phase)
        return latest is not None and latest.is_fresh_for(self._draft)

    @property
    def displayed_text(self) -> Optional[str]:
        """Text of the one active phase (failure message if its last run failed)."""
        if self.active_phase is None:
            return None
        if self.active_phase in self._failures:
            return self._failures[self.active_phase]
        return self.cache.latest_text(self.active_phase)

    def close_result(self) -> None:
        self.active_phase = None

    # ==================== Save ====================

    async def save(self) -> SaveResult:
        """
        Append the draft and the current analyses as one essay row.

        Returns:
            SaveResult with the user-facing message
        """
        if not self._draft.strip():
            self.message = EMPTY_DRAFT_MESSAGE
            return SaveResult(saved=False, message=self.message)

        self.message = SAVING_MESSAGE
        self._in_flight += 1
        try:
            user_id = await self.auth.get_user_id()
            if not user_id:
                self.message = LOGIN_REQUIRED_MESSAGE
                return SaveResult(saved=False, message=self.message)

            record: Dict[str, Optional[str]] = {"user_id": user_id, "content": self._draft}
            for phase, spec in PHASES.items():
                text = self.cache.latest_text(phase)
                record[spec.essay_column] = json.dumps(text) if text else None

            await self.repository.insert_essay(record)
        except TutorError as e:
            logger.error(f"❌ [WritingPipeline] Error saving essay: {e}")
            self.message = f"Error: {e}"
            return SaveResult(saved=False, message=self.message)
        finally:
            self._in_flight -= 1

        self.save_status = "saved"
        self.message = SAVED_MESSAGE
        logger.info("💾 [WritingPipeline] Essay saved")
        return SaveResult(saved=True, message=self.message, record=record)

    def snapshot(self) -> Dict[str, object]:
        return {
            "draft": self._draft,
            "active_phase": self.active_phase.value if self.active_phase else None,
            "displayed_text": self.displayed_text,
            "message": self.message,
            "is_loading": self.is_loading,
            "save_status": self.save_status,
            "phases": {
                phase.value: {
                    "label": spec.label,
                    "has_result": self.cache.latest(phase) is not None,
                    "fresh": self.is_fresh(phase),
                }
                for phase, spec in PHASES.items()
            },
        }
