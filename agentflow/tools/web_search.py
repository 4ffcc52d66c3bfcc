"""
Web Search Tool
===============

Searches the web through the Google Custom Search JSON API.

Search API Notes:
- Uses httpx for async HTTP requests
- Needs an API key and a search engine id (the "cx" scope identifier),
  both read from the session SecretStore at call time
- The API returns at most 10 results per request, so num_results is
  clamped to [1, 10]

Failures raise, and the executor records them as tool results:
- MissingCredentialsError when a key is absent (no request is made)
- UpstreamError for non-2xx responses
- UpstreamTimeoutError when the request exceeds the configured timeout
"""

import httpx

from agentflow.tools import ToolSpec
from agentflow.utils.config import SearchConfig, SecretStore
from agentflow.utils.errors import MissingCredentialsError, UpstreamError, UpstreamTimeoutError
from agentflow.utils.logger import Logger

logger = Logger("WebSearch")

DEFAULT_NUM_RESULTS = 5
MAX_NUM_RESULTS = 10


def clamp_num_results(value) -> int:
    """Coerce num_results to an int within [1, 10]."""
    if value is None:
        return DEFAULT_NUM_RESULTS
    if isinstance(value, bool):
        raise ValueError("num_results must be an integer")
    try:
        count = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"num_results must be an integer, got {value!r}") from None
    return max(1, min(MAX_NUM_RESULTS, count))


class WebSearchClient:
    """
    Thin async client for the search API.

    Example:
        client = WebSearchClient(secrets, config.search)
        items = await client.search("python asyncio", num_results=3)
    """

    def __init__(
        self,
        secrets: SecretStore,
        config: SearchConfig,
        http_client: httpx.AsyncClient | None = None
    ):
        self.secrets = secrets
        self.config = config
        self._http_client = http_client

    def _credentials(self) -> tuple[str, str]:
        missing = self.secrets.missing(SecretStore.SEARCH_API_KEY, SecretStore.SEARCH_ENGINE_ID)
        if missing:
            raise MissingCredentialsError(*missing)
        return (
            self.secrets.get(SecretStore.SEARCH_API_KEY),
            self.secrets.get(SecretStore.SEARCH_ENGINE_ID),
        )

    async def _get(self, client: httpx.AsyncClient, params: dict) -> httpx.Response:
        try:
            return await client.get(
                self.config.endpoint,
                params=params,
                timeout=self.config.timeout_seconds
            )
        except httpx.TimeoutException:
            raise UpstreamTimeoutError("Search", self.config.timeout_seconds) from None
        except httpx.HTTPError as e:
            raise UpstreamError("Search", None, str(e)) from e

    async def search(self, query: str, num_results=DEFAULT_NUM_RESULTS) -> list[dict]:
        """
        Run a search and return the simplified result items.

        Returns:
            List of {"title", "link", "snippet"} dicts
        """
        api_key, engine_id = self._credentials()
        params = {
            "key": api_key,
            "cx": engine_id,
            "q": query,
            "num": str(clamp_num_results(num_results)),
        }

        logger.info(f"Searching: {query[:60]}", {"num": params["num"]})

        if self._http_client is not None:
            response = await self._get(self._http_client, params)
        else:
            async with httpx.AsyncClient() as client:
                response = await self._get(client, params)

        if not response.is_success:
            logger.warning(f"Search API error: {response.status_code}")
            raise UpstreamError("Search", response.status_code, response.text)

        data = response.json()
        return [
            {
                "title": item.get("title"),
                "link": item.get("link"),
                "snippet": item.get("snippet"),
            }
            for item in data.get("items") or []
        ]


def create_web_search_tool(
    secrets: SecretStore,
    config: SearchConfig,
    http_client: httpx.AsyncClient | None = None
) -> ToolSpec:
    """Build the web_search ToolSpec bound to a search client."""
    client = WebSearchClient(secrets, config, http_client=http_client)

    async def _web_search(params: dict) -> dict:
        query = params.get("query")
        if not isinstance(query, str) or not query.strip():
            raise ValueError("query must be a non-empty string")

        items = await client.search(query, params.get("num_results", DEFAULT_NUM_RESULTS))
        return {"items": items}

    return ToolSpec(
        name="web_search",
        description="Search the web for information",
        parameters={
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "The search query"
                },
                "num_results": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": MAX_NUM_RESULTS,
                    "default": DEFAULT_NUM_RESULTS,
                    "description": "How many results to return"
                }
            },
            "required": ["query"]
        },
        handler=_web_search
    )
