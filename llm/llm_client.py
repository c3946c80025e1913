import json
import logging
import re
from typing import List, Optional, Type, TypeVar

from langchain_anthropic import ChatAnthropic
from langchain_community.chat_models import ChatOllama
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI
from pydantic import BaseModel, SecretStr, ValidationError

from config import LLMSettings
from llm.exceptions import LLMGenerationError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

JSON_OBJECT_RX = re.compile(r"\{[\s\S]*\}")


class LLMClient:
    """Thin wrapper over the LangChain chat model selected in the settings."""

    def __init__(self, llm_config: LLMSettings):
        self.provider = llm_config.LLM_PROVIDER
        self.model = llm_config.LLM_MODEL
        self.api_key = llm_config.LLM_API_KEY
        self.timeout = llm_config.LLM_TIMEOUT
        self.max_retries = llm_config.LLM_MAX_RETRIES
        self.base_url = llm_config.LLM_BASE_URL
        self.temperature = llm_config.LLM_TEMPERATURE

        logger.info(
            f"LLMClient initialized with provider={self.provider}, model={self.model}, base_url={self.base_url}, temperature={self.temperature}"
        )

        if self.provider == "openai":
            self.client = ChatOpenAI(
                model=self.model,
                base_url=self.base_url,
                api_key=SecretStr(self.api_key),
                timeout=self.timeout,
                max_retries=self.max_retries,
                temperature=self.temperature,
            )
        elif self.provider == "ollama":
            # ChatOllama has no built-in retries
            llm = ChatOllama(
                model=self.model, base_url=self.base_url, temperature=self.temperature
            )
            self.client = llm.with_retry(
                stop_after_attempt=self.max_retries,
                wait_exponential_jitter=True,
            )
        elif self.provider == "anthropic":
            self.client = ChatAnthropic(
                model_name=self.model,
                api_key=SecretStr(self.api_key),
                timeout=self.timeout,
                max_retries=self.max_retries,
                temperature=self.temperature,
            )
        elif self.provider == "google":
            self.client = ChatGoogleGenerativeAI(
                model=self.model,
                google_api_key=SecretStr(self.api_key),
                timeout=self.timeout,
                max_retries=self.max_retries,
                temperature=self.temperature,
            )
        else:
            raise ValueError(f"Unsupported LLM provider: {self.provider}")

    @staticmethod
    def _messages(prompt: str, system_message: Optional[str]) -> List[BaseMessage]:
        messages: List[BaseMessage] = []
        if system_message:
            messages.append(SystemMessage(content=system_message))
        messages.append(HumanMessage(content=prompt))
        return messages

    def generate_response(self, prompt: str, system_message: Optional[str] = None) -> str:
        """
        Generate a plain-text LLM response.

        Raises:
            LLMGenerationError: if the provider call fails.
        """
        try:
            logger.debug(f"Generating LLM response for prompt: {prompt[:100]}...")
            response = self.client.invoke(self._messages(prompt, system_message))
            content = response.content if hasattr(response, "content") else str(response)
            if isinstance(content, list):
                content = "".join(
                    part.get("text", "") if isinstance(part, dict) else str(part) for part in content
                )
            logger.debug(f"LLM raw response: {content}")
            return content.strip()
        except Exception as e:
            logger.error(
                f"Failed to generate response from LLM after {self.max_retries} attempts: {str(e)}"
            )
            raise LLMGenerationError(
                prompt=prompt, provider=self.provider, model=self.model
            ) from e

    def generate_structured_response(
        self, prompt: str, schema: Type[T], system_message: Optional[str] = None
    ) -> T:
        """
        Generate a structured LLM response using function calling.

        Falls back to a raw invoke and parses the first JSON object from the
        reply when the provider rejects tool calls.

        Args:
            prompt: The user prompt/question
            schema: Pydantic model class that defines the expected response structure
            system_message: Optional system message to guide the model behavior

        Returns:
            Instance of the provided schema type with validated data

        Raises:
            LLMGenerationError: If the LLM fails to generate a valid response
        """
        messages = self._messages(prompt, system_message)
        try:
            logger.debug(f"Generating structured LLM response for schema: {schema.__name__}")
            structured_llm = self.client.with_structured_output(schema, method="function_calling")
            result: T = structured_llm.invoke(messages)
            logger.debug(f"LLM structured response received: {result.model_dump_json()}")
            return result
        except Exception as e:
            logger.warning(
                f"Structured output failed ({type(e).__name__}: {e}). Trying tolerant fallback."
            )
            try:
                raw = self.client.invoke(messages)
                content = getattr(raw, "content", None) or str(raw)
                match = JSON_OBJECT_RX.search(str(content))
                if not match:
                    raise ValueError("No JSON object found in fallback content.")
                return schema.model_validate(json.loads(match.group(0)))
            except (ValueError, ValidationError, Exception) as e2:
                logger.error(f"Failed to generate structured response from LLM after fallback: {e2}")
                raise LLMGenerationError(
                    prompt=prompt, provider=self.provider, model=self.model
                ) from e
