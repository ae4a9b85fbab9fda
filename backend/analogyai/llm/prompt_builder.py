"""Prompt construction for analogy generation and regeneration."""

from pathlib import Path
from typing import List, Optional
from langchain_core.prompts import PromptTemplate

from ..schemas import GenerateAnalogyIn

# Get the prompts directory path
_PROMPTS_DIR = Path(__file__).parent / "prompts"


def _load_prompt(filename: str) -> str:
    """
    Load a prompt template from a markdown file.

    Args:
        filename: Name of the prompt file (e.g., "analogy_prompt.md")

    Returns:
        Prompt template string

    Raises:
        FileNotFoundError: If the prompt file doesn't exist
    """
    prompt_path = _PROMPTS_DIR / filename
    if not prompt_path.exists():
        raise FileNotFoundError(f"Prompt file not found: {prompt_path}")

    with open(prompt_path, "r", encoding="utf-8") as f:
        return f.read().strip()


# Load prompts from markdown files
SYSTEM_PROMPT = _load_prompt("system_prompt.md")
ANALOGY_PROMPT = PromptTemplate.from_template(_load_prompt("analogy_prompt.md"))
REGENERATE_PROMPT = PromptTemplate.from_template(_load_prompt("regenerate_prompt.md"))

_MORE_ADVANCED = (
    "The previous analogy was too simple. Make this one more sophisticated and "
    "detailed with advanced concepts and terminology."
)
_SIMPLER = (
    "The previous analogy was too advanced. Make this one simpler and more "
    "accessible for beginners."
)
_DIFFERENT_STYLE = (
    "The user wants a different perspective. Use a completely different analogy "
    "approach and style."
)

# Hyphenated codes are sent by older clients.
FEEDBACK_INSTRUCTIONS = {
    "too_simple": _MORE_ADVANCED,
    "too-simple": _MORE_ADVANCED,
    "too_advanced": _SIMPLER,
    "too-complex": _SIMPLER,
    "different_style": _DIFFERENT_STYLE,
    "different-angle": _DIFFERENT_STYLE,
}
DEFAULT_FEEDBACK_INSTRUCTION = "Create a new analogy with a fresh perspective."


def feedback_instruction(feedback: str) -> str:
    """Map a feedback code to its instruction. Unknown codes get the fresh-perspective default."""
    return FEEDBACK_INSTRUCTIONS.get(feedback, DEFAULT_FEEDBACK_INSTRUCTION)


def interests_clause(interests: List[str]) -> str:
    if interests:
        return (
            f"The user is interested in: {', '.join(interests)}. "
            "Use these interests to create relatable analogies."
        )
    return "Create a general analogy that most people can understand."


def context_clause(context: Optional[str]) -> str:
    return f"Additional context: {context}" if context else ""


def build_analogy_prompt(request: GenerateAnalogyIn, feedback: Optional[str] = None) -> str:
    """
    Render the user prompt for a generation request.

    Args:
        request: Validated generation request
        feedback: Regeneration feedback code; when given, the regeneration
            template is used with the matching feedback instruction

    Returns:
        Prompt text
    """
    values = {
        "topic": request.topic,
        "context_clause": context_clause(request.context),
        "knowledge_level": request.personalization.knowledge_level,
        "interests_clause": interests_clause(request.personalization.interests),
    }
    if feedback is None:
        return ANALOGY_PROMPT.format(**values)
    return REGENERATE_PROMPT.format(feedback=feedback_instruction(feedback), **values)
