"""
Thought Extraction Engine

Turns a conversation into typed, validated thoughts, and a single quick
note into one categorized thought. The model's JSON is untrusted: it is
checked against the thought taxonomy before anything leaves this module.
"""
import logging
import math
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from ..conversation import Message, format_transcript
from ..llm import (
    LLMProvider,
    LLMInvalidResponseError,
)
from ..models.thought import (
    ThoughtKind,
    ThoughtDomain,
    ThoughtStance,
    NOTE_KINDS,
)
from ..prompts.extractor import (
    THOUGHT_EXTRACTOR_SYSTEM,
    THOUGHT_EXTRACTOR_SIZING,
    THOUGHT_EXTRACTOR_PROMPT,
)
from ..prompts.categorize import NOTE_CATEGORIZER_SYSTEM, NOTE_CATEGORIZER_PROMPT
from ..schemas.thought import ExtractedThought, ThoughtExtractionResult
from ..tracer import trace_input, trace_step, trace_result

logger = logging.getLogger(__name__)

DEFAULT_STANCE = ThoughtStance.BELIEVE
DEFAULT_CONFIDENCE = 0.8
LIST_FIELDS = ("evidence", "examples", "actionables", "tags")


class ExtractionEngineError(Exception):
    """Base class for extraction failures."""
    pass


class ExtractionParseError(ExtractionEngineError):
    """The model's response could not be parsed into the expected shape."""
    pass


class ExtractionValidationError(ExtractionEngineError):
    """The response parsed but violates the thought taxonomy."""
    pass


def thought_targets(message_count: int) -> Tuple[int, int]:
    """
    Target and minimum number of thoughts for a conversation.

    The target grows with conversation length (one per three messages)
    and is clamped to [6, 25]; the minimum is 60% of the target, never
    below 3 and never above the target.
    """
    target = min(25, max(6, math.ceil(message_count / 3)))
    minimum = min(target, max(3, math.ceil(target * 0.6)))
    return target, minimum


def normalize_thought(
    raw: Any,
    allowed_kinds: Iterable[ThoughtKind] = tuple(ThoughtKind),
    default_domain: ThoughtDomain = ThoughtDomain.MIXED,
) -> ExtractedThought:
    """
    Validate one raw thought object and fill in defaults.

    Kind and claim are mandatory. Missing or unrecognized domain and
    stance fall back to defaults, a missing confidence becomes 0.8 and
    missing list fields become empty lists.
    """
    if not isinstance(raw, dict):
        raise ExtractionParseError(f"Expected a thought object, got {type(raw).__name__}")

    allowed = {kind.value for kind in allowed_kinds}
    kind = raw.get("kind")
    if not isinstance(kind, str) or kind not in allowed:
        raise ExtractionValidationError(f"Invalid thought kind: {kind!r}")

    claim = raw.get("claim")
    if not isinstance(claim, str) or not claim.strip():
        raise ExtractionValidationError("Thought is missing a claim")

    domain = raw.get("domain")
    if not isinstance(domain, str) or domain not in {d.value for d in ThoughtDomain}:
        if domain is not None:
            logger.warning(f"Unknown domain {domain!r}, using {default_domain.value}")
        domain = default_domain.value

    stance = raw.get("stance")
    if not isinstance(stance, str) or stance not in {s.value for s in ThoughtStance}:
        if stance is not None:
            logger.warning(f"Unknown stance {stance!r}, using {DEFAULT_STANCE.value}")
        stance = DEFAULT_STANCE.value

    confidence = raw.get("confidence")
    if confidence is None:
        confidence = DEFAULT_CONFIDENCE
    elif isinstance(confidence, (int, float)) and not isinstance(confidence, bool):
        confidence = min(1.0, max(0.0, float(confidence)))

    data = {
        "kind": kind,
        "domain": domain,
        "claim": claim.strip(),
        "stance": stance,
        "confidence": confidence,
        "context": raw.get("context") or None,
    }
    for name in LIST_FIELDS:
        value = raw.get(name)
        data[name] = value if value is not None else []

    try:
        return ExtractedThought(**data)
    except ValidationError as e:
        raise ExtractionValidationError(f"Invalid thought fields: {e}") from e


class ExtractionEngine:
    """
    LLM-backed thought extraction.

    Usage:
        engine = ExtractionEngine(llm, extraction_model="gpt-4o")
        result = await engine.extract_thoughts(messages)
    """

    def __init__(
        self,
        llm: LLMProvider,
        extraction_model: str,
        categorize_model: Optional[str] = None,
    ):
        self.llm = llm
        self.extraction_model = extraction_model
        self.categorize_model = categorize_model or extraction_model

    async def _request_json(self, prompt: str, model: str, system_prompt: str) -> Any:
        try:
            return await self.llm.extract_json(
                prompt=prompt,
                model=model,
                system_prompt=system_prompt,
            )
        except LLMInvalidResponseError as e:
            raise ExtractionParseError(f"Extraction response was not valid JSON: {e}") from e

    async def extract_thoughts(self, messages: Sequence[Message]) -> ThoughtExtractionResult:
        """
        Extract thoughts from a conversation.

        Raises:
            ExtractionParseError: response is not JSON or lacks a thoughts array
            ExtractionValidationError: no thoughts, or a thought breaks the taxonomy
            LLMError: the provider call itself failed
        """
        target, minimum = thought_targets(len(messages))
        trace_input("extraction", "messages", len(messages))
        trace_step("extraction", f"Target {target} thoughts (minimum {minimum})")

        system_prompt = THOUGHT_EXTRACTOR_SYSTEM.format(
            sizing=THOUGHT_EXTRACTOR_SIZING.format(target=target, minimum=minimum)
        )
        prompt = THOUGHT_EXTRACTOR_PROMPT.format(
            target=target,
            minimum=minimum,
            transcript=format_transcript(messages),
        )

        data = await self._request_json(prompt, self.extraction_model, system_prompt)
        if not isinstance(data, dict) or not isinstance(data.get("thoughts"), list):
            raise ExtractionParseError("Extraction response has no 'thoughts' array")

        raw_thoughts: List[Any] = data["thoughts"]
        if not raw_thoughts:
            raise ExtractionValidationError("No thoughts extracted")

        thoughts = [normalize_thought(raw) for raw in raw_thoughts]
        if len(thoughts) < minimum:
            logger.info(f"Extracted {len(thoughts)} thoughts, below the minimum of {minimum}")

        trace_result("extraction", "extract_thoughts", True, f"{len(thoughts)} thoughts")
        return ThoughtExtractionResult(thoughts=thoughts)

    async def categorize(self, note: str) -> ExtractedThought:
        """Categorize a quick note as a single thought."""
        data = await self._request_json(
            NOTE_CATEGORIZER_PROMPT.format(note=note),
            self.categorize_model,
            NOTE_CATEGORIZER_SYSTEM,
        )
        thought = normalize_thought(
            data,
            allowed_kinds=NOTE_KINDS,
            default_domain=ThoughtDomain.PERSONAL,
        )
        trace_result("extraction", "categorize", True, thought.kind.value)
        return thought
