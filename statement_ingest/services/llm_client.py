"""LLM client returning structured JSON, used by the categorization adapter."""

import asyncio
import json
import logging
from typing import Optional, Type, TypeVar

from litellm import acompletion
from pydantic import BaseModel, ValidationError

from statement_ingest.config import settings
from statement_ingest.parsers.validation import ParsingError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


def _get_model_name() -> str:
    """Get the litellm model name for the configured provider."""
    if settings.llm_provider == "openai":
        return settings.openai_model
    if settings.llm_provider == "gemini":
        return f"gemini/{settings.gemini_model}"
    return f"ollama/{settings.ollama_model}"


def _get_api_base() -> Optional[str]:
    """Get the API base URL for Ollama."""
    if settings.llm_provider == "ollama":
        return settings.ollama_host
    return None


def extract_json_content(content: str) -> str:
    """
    Pull the JSON document out of an LLM reply.

    Handles ```json fences, a single unterminated fence and prose before the
    first brace or bracket.
    """
    content = content.strip()

    if "```" in content:
        parts = content.split("```")
        fenced = parts[1] if len(parts) >= 2 else content
        if fenced.lstrip().startswith("json"):
            fenced = fenced.lstrip()[4:]
        content = fenced.strip()

    starts = [pos for pos in (content.find("{"), content.find("[")) if pos >= 0]
    if starts and min(starts) > 0:
        content = content[min(starts):]

    return content


async def llm_extract_json(
    prompt: str, response_model: Type[T], timeout: float | None = None, max_retries: int = 3
) -> T:
    """
    Call the LLM with a prompt and validate its JSON reply.

    Args:
        prompt: The prompt to send
        response_model: Pydantic model class to parse the reply into
        timeout: Timeout in seconds per call (defaults to ``settings.llm_timeout``)
        max_retries: Maximum number of attempts

    Returns:
        Instance of response_model

    Raises:
        ParsingError: If every attempt fails
    """
    timeout = timeout or settings.llm_timeout
    last_error: Exception | None = None

    for attempt in range(max_retries):
        try:
            logger.debug(f"LLM call attempt {attempt + 1}/{max_retries} ({_get_model_name()})")
            response = await acompletion(
                model=_get_model_name(),
                messages=[{"role": "user", "content": prompt}],
                api_base=_get_api_base(),
                api_key=settings.active_api_key,
                temperature=0.1,  # Low temperature for consistency
                max_tokens=4096,
                timeout=timeout,
            )
            content = extract_json_content(response.choices[0].message.content or "")
            return response_model.model_validate(json.loads(content))

        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON from LLM (attempt {attempt + 1}/{max_retries}): {e}")
            last_error = e
        except ValidationError as e:
            logger.error(f"LLM reply failed validation (attempt {attempt + 1}/{max_retries}): {e}")
            last_error = e
        except TimeoutError as e:
            logger.warning(f"LLM timeout (attempt {attempt + 1}/{max_retries})")
            last_error = e
        except Exception as e:
            logger.error(f"LLM call failed (attempt {attempt + 1}/{max_retries}): {e}")
            last_error = e

        if attempt < max_retries - 1:
            wait_time = 2**attempt
            logger.info(f"Retrying in {wait_time}s...")
            await asyncio.sleep(wait_time)

    raise ParsingError(f"LLM call failed after {max_retries} attempts: {last_error}")
