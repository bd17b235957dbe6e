import logging
from typing import Any, Callable, Dict, List, Optional

from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    OpenAI,
    OpenAIError,
    RateLimitError,
)
from ratelimit import limits, sleep_and_retry

from ..utils.errors import Err, OGError, ProviderError
from ..utils.response_parsers import extract_response_text
from .generation_config import ProviderSettings
from .providers import (
    CredentialProvider,
    EnvCredentialProvider,
    ModelConfigProvider,
    StaticModelConfigProvider,
)

logger = logging.getLogger(__name__)

ClientFactory = Callable[..., Any]


class LLMClientProto:
    def complete(
        self,
        prompt: str,
        *,
        system_instruction: Optional[str] = None,
        response_format_hint: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:  # pragma: no cover - protocol only
        raise NotImplementedError


class OpenAICompatibleClient(LLMClientProto):
    """
    LLM collaborator for any OpenAI-compatible chat endpoint (OpenRouter by default).

    Proactively paced with ratelimit. Does not retry: failures are raised as
    ProviderError carrying the status class so the stage callers can decide.
    Credentials and model are resolved through the injected providers on
    every call.
    """

    def __init__(
        self,
        settings: Optional[ProviderSettings] = None,
        *,
        credentials: Optional[CredentialProvider] = None,
        model_config: Optional[ModelConfigProvider] = None,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.settings = settings or ProviderSettings()
        self.credentials = credentials or EnvCredentialProvider(self.settings.api_key_env)
        self.model_config = model_config or StaticModelConfigProvider(
            self.settings.model, self.settings.base_url
        )
        self._client_factory = client_factory or OpenAI
        self._clients: Dict[tuple, Any] = {}
        self._throttled = self._make_throttled_call()

    def _client_for(self, api_key: str, base_url: str) -> Any:
        key = (api_key, base_url)
        if key not in self._clients:
            self._clients[key] = self._client_factory(
                api_key=api_key,
                base_url=base_url,
                timeout=self.settings.timeout_s,
                max_retries=0,
            )
        return self._clients[key]

    def _make_throttled_call(self) -> Callable[..., Any]:
        @sleep_and_retry
        @limits(calls=self.settings.rate_limit_calls, period=self.settings.rate_limit_period)
        def throttled(client: Any, request: Dict[str, Any]) -> Any:
            return client.chat.completions.create(**request)

        return throttled

    def complete(
        self,
        prompt: str,
        *,
        system_instruction: Optional[str] = None,
        response_format_hint: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        api_key = self.credentials.get_api_key()
        if not api_key:
            raise OGError(
                Err.INVALID_CONFIG,
                ctx={"reason": "missing_api_key", "env": self.settings.api_key_env},
            )
        cfg = self.model_config.get_model_config()
        client = self._client_for(api_key, cfg.base_url)

        messages: List[Dict[str, str]] = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        messages.append({"role": "user", "content": prompt})
        request: Dict[str, Any] = {"model": cfg.model, "messages": messages}
        if temperature is not None:
            request["temperature"] = temperature
        if max_tokens is not None:
            request["max_tokens"] = max_tokens
        if response_format_hint == "json":
            request["response_format"] = {"type": "json_object"}

        logger.info(f"Making API call to {cfg.model} (prompt length: {len(prompt)} chars)")
        try:
            response = self._throttled(client, request)
        except RateLimitError as e:
            raise ProviderError(message=str(e), status_code=429, cause=e)
        except APITimeoutError as e:
            raise ProviderError(message=str(e), kind="timeout", cause=e)
        except APIConnectionError as e:
            raise ProviderError(message=str(e), kind="connection", cause=e)
        except APIStatusError as e:
            raise ProviderError(message=str(e), status_code=e.status_code, cause=e)
        except OpenAIError as e:
            raise ProviderError(message=str(e), kind="response", cause=e)

        payload = response.model_dump() if hasattr(response, "model_dump") else response
        text = extract_response_text(payload)
        logger.info(f"API call successful, response length: {len(text)} chars")
        return text


__all__ = ["LLMClientProto", "OpenAICompatibleClient"]
