"""Bearer token pipeline."""

import inspect
from collections.abc import Awaitable, Callable

from http_pipeline.core.chain import Pipeline, Skip
from http_pipeline.models import Request
from http_pipeline.utils.headers import merge_headers

TokenProvider = Callable[[], str | None | Awaitable[str | None]]


class AuthPipeline(Pipeline):
    """Adds ``Authorization: Bearer <token>`` to every request.

    The provider is called once per attempt, so a refreshed token is picked
    up by retries. It may be a plain function or a coroutine function; when
    it returns None the request is sent unchanged.

    Example:
        >>> AuthPipeline(get_token=lambda: os.environ.get("API_TOKEN"))
    """

    def __init__(self, get_token: TokenProvider, scheme: str = "Bearer") -> None:
        self.get_token = get_token
        self.scheme = scheme

    async def on_request(self, request: Request) -> Request | Skip:
        token = self.get_token()
        if inspect.isawaitable(token):
            token = await token
        if not token:
            return request
        return request.copy_with(
            headers=merge_headers(request.headers, {"Authorization": f"{self.scheme} {token}"})
        )

    def __repr__(self) -> str:
        return f"AuthPipeline(scheme={self.scheme!r})"
