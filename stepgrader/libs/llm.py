"""LLM utilities for creating and configuring AI agents."""


import logging
import os
from typing import Optional, Dict, Any

from pydantic_ai import Agent
from pydantic_ai.models.openai import OpenAIResponsesModel, OpenAIResponsesModelSettings

from stepgrader.errors import ConfigurationError
from stepgrader.libs.config_loader import ConfigType, get_config


# Fix up logging level for httpx to WARNING to reduce noise
logging.getLogger("httpx").setLevel(logging.WARNING)

LOG = logging.getLogger(__name__)


def resolve_api_key(configs: ConfigType) -> str:
    """
    Return the OpenAI API key from config, falling back to OPENAI_API_KEY.

    Raises:
        ConfigurationError: If no key is configured anywhere
    """
    api_key = get_config("openai.api_key", configs, default=None)
    if not api_key:
        api_key = os.environ.get("OPENAI_API_KEY")
    if not api_key or not str(api_key).strip():
        raise ConfigurationError(
            "OpenAI API key is missing. Set openai.api_key in config/local.yaml "
            "or the OPENAI_API_KEY environment variable."
        )
    return str(api_key).strip()


def create_agent(configs: ConfigType,
                 model: Optional[str] = None,
                 settings_dict: Optional[Dict[str, Any]] = None,
                 system_prompt: Optional[str] = None) -> Agent:
    """
    Create a pydantic-ai Agent configured with OpenAI models.

    Args:
        configs: Configuration dictionary (required)
        model: Model to use (overrides config value)
        settings_dict: Pydantic AI settings dict (overrides config values)
        system_prompt: System prompt for the agent (optional)

    Returns:
        Configured Agent

    Raises:
        ConfigurationError: If the API key or model name is not configured
    """
    api_key = resolve_api_key(configs)
    organization = get_config("openai.organization", configs, default=None)
    model = model or get_config("openai.model", configs, default=None)
    if not model:
        raise ConfigurationError("No model configured. Set openai.model in config.")
    base_settings = get_config("openai.pydantic_ai_settings", configs, default={}) or {}

    os.environ['OPENAI_API_KEY'] = api_key
    if organization:
        os.environ['OPENAI_ORG_ID'] = organization

    settings_dict = base_settings | (settings_dict or {})
    model_settings = OpenAIResponsesModelSettings(**settings_dict) if settings_dict else None
    openai_model = OpenAIResponsesModel(model)
    LOG.debug(f"Creating agent for model {model} with settings {settings_dict}")
    if system_prompt:
        agent = Agent(
            model=openai_model,
            model_settings=model_settings,
            system_prompt=system_prompt,
            retries=0,
        )
    else:
        agent = Agent(
            model=openai_model,
            model_settings=model_settings,
            retries=0,
        )
    return agent
