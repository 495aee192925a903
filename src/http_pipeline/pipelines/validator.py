"""Result validation pipeline.

Examples:
    Rejecting payloads without an ``id``::

        from http_pipeline.pipelines.validator import ResponseValidatorPipeline

        def require_id(result):
            if b'"id"' not in result.content:
                return "response has no id"
            return None

        client = Client(config, pipelines=[ResponseValidatorPipeline(require_id)])
"""

import inspect
from collections.abc import Awaitable, Callable

from http_pipeline.core.chain import Pipeline
from http_pipeline.exceptions import CustomError
from http_pipeline.result import Result, ResultLike

Validator = Callable[[ResultLike], str | None | Awaitable[str | None]]


class ResponseValidatorPipeline(Pipeline):
    """Raises CustomError when ``validator`` returns a message.

    Streaming results are buffered before validation so the validator can
    inspect the body. Validation failures go through the retry policy like
    any other error; the default retry predicate does not retry them.
    """

    def __init__(self, validator: Validator) -> None:
        self.validator = validator

    async def on_result(self, result: ResultLike) -> ResultLike:
        if isinstance(result, Result) and not result.is_buffered:
            await result.read()

        message = self.validator(result)
        if inspect.isawaitable(message):
            message = await message
        if message:
            raise CustomError(
                result.request,
                message,
                response=result if isinstance(result, Result) else None,
            )
        return result
