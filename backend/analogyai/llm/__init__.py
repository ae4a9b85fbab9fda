from .service import AnalogyLLM, parse_analogy_reply
from .prompt_builder import build_analogy_prompt

__all__ = ["AnalogyLLM", "parse_analogy_reply", "build_analogy_prompt"]
