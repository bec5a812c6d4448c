"""
LLM Prompts
===========
System instruction, response schema and user prompt builder.

Prompt Design Rules:
    - Code is embedded verbatim inside a fenced block
    - The directive depends on whether a recording is attached
      (correlate video with code vs. pure code review)
    - The model keeps no memory between calls, so the whole conversation is
      replayed as text on every call. Model turns are replayed as their JSON
      report, not paraphrased.

Structured Output:
    RESPONSE_SCHEMA is sent as generationConfig.responseSchema with
    responseMimeType application/json. The decoder still validates the reply
    on its own, since models occasionally wrap JSON in code fences.
"""
import logging
from typing import Sequence

from vibefix.core.constants import ROLE_MODEL
from vibefix.models.analysis_request import AnalysisRequest
from vibefix.models.chat_entry import ChatEntry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# System Instruction
# ---------------------------------------------------------------------------
SYSTEM_INSTRUCTION = (
    "# Role\n"
    "You are VibeFix, a Senior Full-Stack Engineer and UI/UX Specialist. You can "
    "perceive code, visual bugs, and user frustration at the same time.\n"
    "\n"
    "# Task\n"
    "Analyze a screen recording of a software bug (when one is provided), "
    "cross-reference it with the provided source code, and produce a specific fix. "
    "When the user gives feedback, refine your previous fix.\n"
    "\n"
    "# Inputs Provided\n"
    "1. Video: a screen recording showing the visual glitch or functional error (optional).\n"
    "2. Codebase: a subset of the project's source code.\n"
    "3. Chat History: the previous fix and the user's feedback.\n"
    "\n"
    "# Reasoning Steps\n"
    "1. Visual Analysis: identify the UI element causing the issue in the video.\n"
    "2. Intent Correlation: understand what the user wants, from the video or their feedback.\n"
    "3. Code Triangulation: locate the file and line.\n"
    "4. Refinement: if the user gives feedback (e.g. \"Make it red\"), update the "
    "previous fix to match it while keeping it correct.\n"
    "5. Solution Generation: write the corrected code block.\n"
    "\n"
    "# Output\n"
    "Respond with ONLY a JSON object with the keys bug_summary, user_sentiment, "
    "file_to_edit, explanation and code_patch. No markdown code fences.\n"
    "\n"
    "# Tone\n"
    "Professional, empathetic, and slightly \"hacker-cool\". Use emojis occasionally."
)


# ---------------------------------------------------------------------------
# Response Schema (Gemini OpenAPI subset)
# ---------------------------------------------------------------------------
REQUIRED_FIELDS = (
    "bug_summary",
    "user_sentiment",
    "file_to_edit",
    "explanation",
    "code_patch",
)

RESPONSE_SCHEMA: dict = {
    "type": "OBJECT",
    "properties": {
        "bug_summary": {
            "type": "STRING",
            "description": "One sentence description of the bug.",
        },
        "user_sentiment": {
            "type": "STRING",
            "description": "Frustrated/Confused/Helpful",
        },
        "file_to_edit": {
            "type": "STRING",
            "description": "The path of the file that needs editing.",
        },
        "explanation": {
            "type": "STRING",
            "description": (
                "Conversational explanation of the fix. If this is a refinement, "
                "respond directly to the user's feedback."
            ),
        },
        "code_patch": {
            "type": "STRING",
            "description": "The corrected code snippet.",
        },
    },
    "required": list(REQUIRED_FIELDS),
}


# ---------------------------------------------------------------------------
# Directives
# ---------------------------------------------------------------------------
VIDEO_DIRECTIVE = (
    "Analyze the screen recording and the code together: match what goes wrong "
    "on screen to the code responsible for it, then fix that code."
)

CODE_ONLY_DIRECTIVE = (
    "No screen recording was supplied. Review the code above on its own, find "
    "the most likely bug, and fix it."
)

REFINE_DIRECTIVE = (
    "Refine your previous fix based on the conversation above. Respond directly "
    "to the user's latest feedback in the explanation and return the full "
    "updated report."
)


# ---------------------------------------------------------------------------
# User Prompt Builder
# ---------------------------------------------------------------------------
def serialize_history(history: Sequence[ChatEntry]) -> str:
    """
    Render conversation turns as alternating User:/Assistant: lines.

    Model turns holding a report are rendered as the report's JSON.
    """
    lines: list[str] = []
    for entry in history:
        speaker = "Assistant" if entry.role == ROLE_MODEL else "User"
        lines.append(f"{speaker}: {entry.render()}")
    return "\n".join(lines)


def build_user_prompt(
    code_text: str,
    has_media: bool,
    history: Sequence[ChatEntry] = (),
) -> str:
    """
    Build the text part of the request.

    Parameters
    ----------
    code_text : str
        Code snippet, embedded verbatim.
    has_media : bool
        Whether a recording accompanies the prompt.
    history : sequence of ChatEntry
        Prior turns, oldest first. Empty for a first analysis.

    Returns
    -------
    str
        Complete prompt text.
    """
    parts: list[str] = []

    if has_media:
        parts.append(
            "Here is the relevant code snippet for the application shown in the video:"
        )
    else:
        parts.append("Here is the code snippet to review:")
    parts.append(f"```\n{code_text}\n```")
    parts.append(VIDEO_DIRECTIVE if has_media else CODE_ONLY_DIRECTIVE)

    if history:
        parts.append(f"CONVERSATION SO FAR:\n{serialize_history(history)}")
        parts.append(REFINE_DIRECTIVE)

    return "\n\n".join(parts)


def build_contents(request: AnalysisRequest) -> list[dict]:
    """
    Build the generateContent `contents` array for a request.

    A single user turn carries the recording (when present) followed by the
    assembled prompt text.
    """
    prompt = build_user_prompt(request.code_text, request.has_media, request.history)
    parts: list[dict] = []
    if request.media is not None:
        parts.append(request.media.to_part())
    parts.append({"text": prompt})
    logger.debug(
        "Built prompt: %d chars, %d history entries, media=%s",
        len(prompt), len(request.history), request.has_media,
    )
    return [{"role": "user", "parts": parts}]
