"""LLM service for generating personalized analogies."""

import json
import logging
from langchain_anthropic import ChatAnthropic
from langchain_core.prompts import ChatPromptTemplate
from langchain_core.output_parsers import StrOutputParser
from langchain_openai import ChatOpenAI

from ..config import Settings
from ..errors import GenerationFormatError, GenerationProviderError
from ..schemas import AnalogyContent
from .prompt_builder import SYSTEM_PROMPT

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("analogy", "example")


def _clean_json_string(text: str) -> str:
    """Remove a markdown code fence around a JSON reply."""
    text = text.strip()
    if text.startswith("```json"):
        text = text[len("```json"):]
    elif text.startswith("```"):
        text = text[len("```"):]
    if text.endswith("```"):
        text = text[:-len("```")]
    return text.strip()


def parse_analogy_reply(raw: str) -> AnalogyContent:
    """
    Parse and validate a provider reply.

    Args:
        raw: Reply text, expected to be a JSON object

    Returns:
        Parsed analogy and example

    Raises:
        GenerationProviderError: If the reply is not valid JSON
        GenerationFormatError: If the JSON lacks a non-empty string `analogy` or `example`
    """
    try:
        data = json.loads(_clean_json_string(raw or ""))
    except json.JSONDecodeError as e:
        raise GenerationProviderError(details=f"Malformed reply from provider: {e}") from e

    if not isinstance(data, dict):
        raise GenerationFormatError(details="Reply is not a JSON object")

    for field in REQUIRED_FIELDS:
        value = data.get(field)
        if not isinstance(value, str) or not value.strip():
            raise GenerationFormatError(details=f"Reply is missing a non-empty '{field}' field")

    return AnalogyContent(analogy=data["analogy"], example=data["example"])


class AnalogyLLM:
    """LLM service turning rendered prompts into analogy/example pairs."""

    def __init__(self, settings: Settings):
        """
        Initialize the LLM service. No provider client is created until the first call.

        Args:
            settings: Application settings with provider configuration
        """
        self.settings = settings
        self._llms: dict[float, object] = {}
        self._chains: dict[float, object] = {}

    @property
    def model_name(self) -> str:
        model_name = self.settings.MODEL_NAME
        if self.settings.PROVIDER.lower() == "anthropic" and model_name == "gpt-4o":
            return "claude-3-5-sonnet-latest"
        return model_name

    def _make_llm(self, temperature: float):
        """Factory method to create the chat model for a temperature."""
        if temperature in self._llms:
            return self._llms[temperature]

        provider = self.settings.PROVIDER.lower()

        if provider == "openai":
            api_key = self.settings.OPENAI_API_KEY
            if not api_key:
                raise ValueError("OPENAI_API_KEY is required when PROVIDER=openai")

            llm = ChatOpenAI(
                model=self.model_name,
                temperature=temperature,
                timeout=self.settings.TIMEOUT_SEC,
                max_tokens=self.settings.MAX_TOKENS,
                max_retries=0,  # one provider call per request
                api_key=api_key,
            )

        elif provider == "anthropic":
            api_key = self.settings.ANTHROPIC_API_KEY
            if not api_key:
                raise ValueError("ANTHROPIC_API_KEY is required when PROVIDER=anthropic")

            llm = ChatAnthropic(
                model=self.model_name,
                temperature=temperature,
                timeout=self.settings.TIMEOUT_SEC,
                max_tokens=self.settings.MAX_TOKENS,
                max_retries=0,
                api_key=api_key,
            )

        else:
            raise ValueError(f"Unsupported provider: {provider}")

        self._llms[temperature] = llm
        return llm

    def _get_chain(self, temperature: float):
        """Get or create the analogy chain for a temperature."""
        if temperature in self._chains:
            return self._chains[temperature]

        prompt = ChatPromptTemplate.from_messages([
            ("system", SYSTEM_PROMPT),
            ("human", "{prompt}"),
        ])
        llm = self._make_llm(temperature)
        if self.settings.PROVIDER.lower() == "openai":
            llm = llm.bind(response_format={"type": "json_object"})

        chain = prompt | llm | StrOutputParser()
        self._chains[temperature] = chain
        return chain

    async def _agenerate(self, prompt: str, temperature: float) -> AnalogyContent:
        try:
            chain = self._get_chain(temperature)
            raw = await chain.ainvoke({"prompt": prompt})
        except Exception as e:
            logger.exception("Analogy provider call failed")
            raise GenerationProviderError(details=str(e)) from e

        return parse_analogy_reply(raw)

    async def agenerate_analogy(self, prompt: str) -> AnalogyContent:
        """
        Generate an analogy and example from a rendered prompt.

        Args:
            prompt: Prompt from build_analogy_prompt()

        Returns:
            Parsed analogy and example
        """
        return await self._agenerate(prompt, self.settings.TEMPERATURE)

    async def aregenerate_analogy(self, prompt: str) -> AnalogyContent:
        """Same as agenerate_analogy(), at the regeneration temperature."""
        return await self._agenerate(prompt, self.settings.REGENERATE_TEMPERATURE)
