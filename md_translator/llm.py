import json
import logging
import re
from typing import Any, Dict, List, Optional, Protocol

import requests

from md_translator.config import REQUEST_TIMEOUT
from md_translator.errors import ConfigurationError, OracleResponseError

logger = logging.getLogger(__name__)

JSON_MARKDOWN_REGEX = re.compile(r"```json\s*([\s\S]*?)\s*```")


class Oracle(Protocol):
    def complete(self, system_prompt: str, user_prompt: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        ...


def parse_json_content(content: str) -> Dict[str, Any]:
    match = JSON_MARKDOWN_REGEX.search(content)
    json_str = match.group(1) if match else content.strip()
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as jde:
        raise OracleResponseError(f"Failed to decode JSON from content: {jde}. Content sample: {json_str[:200]}") from jde
    if not isinstance(data, dict):
        raise OracleResponseError(f"Expected a JSON object, got {type(data).__name__}")
    return data


class LLMService:
    """OpenAI-compatible chat completion client returning JSON objects."""

    def __init__(self, api_key: Optional[str], endpoint_url: str, model: str, timeout: int = REQUEST_TIMEOUT):
        if not api_key:
            raise ConfigurationError("LLM_SERVICE: API Key not provided.")
        if not endpoint_url:
            raise ConfigurationError("LLM_SERVICE: API Endpoint URL not provided.")
        self.api_key = api_key
        self.endpoint_url = endpoint_url
        self.model = model
        self.timeout = timeout

    def _make_request(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        headers = {"Content-Type": "application/json", "Authorization": f"Bearer {self.api_key}"}
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": 0.0,
            "response_format": {"type": "json_object"},
        }

        logger.debug(f"LLM_SERVICE: Sending request to {self.endpoint_url} with model {self.model}.")
        try:
            response = requests.post(self.endpoint_url, json=payload, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"LLM_SERVICE: API call to {self.endpoint_url} (model {self.model}) failed: {e}")
            if getattr(e, "response", None) is not None:
                logger.error(f"LLM_SERVICE: Response status: {e.response.status_code}, content: {e.response.text}")
            raise OracleResponseError(f"request to {self.endpoint_url} failed: {e}") from e
        except ValueError as e:
            raise OracleResponseError(f"response body is not JSON: {e}") from e

    def get_chat_completion_content(self, messages: List[Dict[str, str]]) -> str:
        api_response = self._make_request(messages)
        try:
            content = api_response["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise OracleResponseError(f"Failed to parse LLM response structure: {e}. Response: {api_response}") from e
        if not isinstance(content, str):
            raise OracleResponseError(f"LLM response content is not text: {content!r}")
        logger.debug(f"LLM_SERVICE: Raw content from model {self.model}: {content[:500]}...")
        return content

    def complete(self, system_prompt: str, user_prompt: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        messages = [
            {"role": "system", "content": system_prompt.format(**variables)},
            {"role": "user", "content": user_prompt.format(**variables)},
        ]
        for message in messages:
            logger.debug(f"LLM_SERVICE: {message['role']}:\n{message['content']}")
        return parse_json_content(self.get_chat_completion_content(messages))
