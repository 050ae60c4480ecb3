"""OpenAI-based exam grader using pydantic-ai multimodal requests."""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from pydantic_ai import Agent

from stepgrader.errors import GradingError
from stepgrader.libs.config_loader import ConfigType, get_config
from stepgrader.libs.llm import create_agent
from .encoder import encode_documents
from .models import Document, GradingResult
from .prompts import REFERENCE_LABEL, SUBMISSION_LABEL, load_instructions
from .response_parser import parse_response

LOG = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.1
DEFAULT_TIMEOUT_SECONDS = 300


def create_grading_agent(configs: ConfigType,
                         model: Optional[str] = None,
                         settings_dict: Optional[Dict[str, Any]] = None) -> Agent:
    """
    Create a pydantic-ai Agent configured for exam grading.

    The output must follow a strict two-block text format, so sampling runs at a
    low temperature unless the caller overrides it.

    Args:
        configs: Configuration dictionary (required)
        model: Model to use (overrides config value)
        settings_dict: Pydantic AI settings dict (overrides config values)

    Returns:
        Configured Agent for grading

    Raises:
        ConfigurationError: If no API key or model is configured
    """
    temperature = get_config("grading.temperature", configs, default=DEFAULT_TEMPERATURE)
    settings = {'temperature': temperature} | (settings_dict or {})
    return create_agent(
        configs=configs,
        model=model,
        settings_dict=settings,
    )


class ExamGrader:
    """Grade one submission per call against a shared set of reference documents."""

    def __init__(self, configs: ConfigType,
                 model: Optional[str] = None, settings: Optional[Dict[str, Any]] = None,
                 timeout: Optional[float] = None):
        """
        Initialize the grader.

        Args:
            configs: Configuration dictionary (required)
            model: Model to use (overrides config value)
            settings: Pydantic AI settings dict (overrides config values)
            timeout: Seconds to wait for one response (overrides config value)

        Raises:
            ConfigurationError: If the API credential is missing
        """
        self.configs = configs
        self.model_name = model
        self.settings = settings
        self.timeout = timeout or get_config("grading.timeout_seconds", configs,
                                             default=DEFAULT_TIMEOUT_SECONDS)
        self.instructions = load_instructions(configs)
        self.agent = create_grading_agent(
            configs=self.configs,
            model=model,
            settings_dict=settings
        )

    def build_prompt(self, reference_documents: Sequence[Document],
                     pages: Sequence[Document]) -> List[Any]:
        """
        Assemble the ordered request parts.

        Instructions first, then the labelled reference documents, then the labelled
        submission pages, each group in its stored order.

        Raises:
            EncodingError: If any document cannot be read
        """
        parts: List[Any] = [self.instructions, REFERENCE_LABEL]
        parts.extend(part.to_binary_content() for part in encode_documents(reference_documents))
        parts.append(SUBMISSION_LABEL)
        parts.extend(part.to_binary_content() for part in encode_documents(pages))
        return parts

    async def grade_async(self, reference_documents: Sequence[Document],
                          pages: Sequence[Document]) -> GradingResult:
        """
        Grade one submission asynchronously.

        Args:
            reference_documents: Exam paper and answer key
            pages: The student's pages

        Returns:
            GradingResult parsed from the model response

        Raises:
            EncodingError: If a document cannot be read
            GradingError: If the model call fails, times out or returns nothing
        """
        prompt = self.build_prompt(reference_documents, pages)
        LOG.debug(f"Sending {len(reference_documents)} reference and {len(pages)} submission documents")

        try:
            result = await asyncio.wait_for(self.agent.run(prompt), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise GradingError(f"Model did not respond within {self.timeout} seconds") from e
        except Exception as e:
            LOG.debug(f"Model call failed: {e!r}")
            raise GradingError(str(e) or type(e).__name__) from e

        response_text = str(result.output or "")
        if not response_text.strip():
            raise GradingError("Model returned an empty response")

        return parse_response(response_text)

    def grade(self, reference_documents: Sequence[Document],
              pages: Sequence[Document]) -> GradingResult:
        """Synchronous wrapper for grade_async."""
        return asyncio.run(self.grade_async(reference_documents, pages))
