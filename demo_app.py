"""Demo of the request engine against an in-process FastAPI application.

The Client sends through httpx.ASGITransport, so no server is started.
Run with: python demo_app.py
Requires the test extra (FastAPI): pip install -e ".[test]"
"""

import asyncio
import itertools
import time
from datetime import UTC, datetime
from typing import Optional

import httpx
from fastapi import FastAPI, Header, HTTPException
from fastapi.responses import StreamingResponse
from prometheus_client import generate_latest
from pydantic import BaseModel

from http_pipeline import CancelToken, Client, ClientConfig, RequestCancelledError, RequestError
from http_pipeline.adapters.httpx_adapter import HttpxTransport
from http_pipeline.observability.logging import configure_logging
from http_pipeline.pipelines import AuthPipeline, LoggerPipeline

API_TOKEN = "demo-token"

# Create FastAPI app
app = FastAPI(
    title="Request Engine Demo",
    description="Demo API exercised by the http_pipeline client",
    version="0.1.0",
)

calls = itertools.count(1)


class PaymentRequest(BaseModel):
    amount: int
    currency: str = "USD"
    description: Optional[str] = None


class PaymentResponse(BaseModel):
    id: str
    status: str
    amount: int
    currency: str
    created_at: str


# Endpoints
@app.get("/api/status")
async def get_status():
    """Health check, cacheable by the client."""
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
    }


@app.get("/api/flaky")
async def flaky():
    """Fails every other call so the client has something to retry."""
    if next(calls) % 2:
        raise HTTPException(status_code=503, detail="try again")
    return {"status": "recovered"}


@app.get("/api/slow")
async def slow():
    await asyncio.sleep(5)
    return {"status": "finally"}


@app.post("/api/payments", response_model=PaymentResponse)
async def create_payment(
    payment: PaymentRequest,
    authorization: Optional[str] = Header(None),
):
    """Create a payment; requires the bearer token."""
    if authorization != f"Bearer {API_TOKEN}":
        raise HTTPException(status_code=401, detail="unauthorized")

    return PaymentResponse(
        id=f"pay_{int(time.time() * 1000)}",
        status="success",
        amount=payment.amount,
        currency=payment.currency,
        created_at=datetime.now(UTC).isoformat(),
    )


@app.get("/api/export.csv")
async def export():
    async def rows():
        yield b"id,amount\n"
        for index in range(1, 6):
            yield f"{index},{index * 100}\n".encode()
            await asyncio.sleep(0.01)

    return StreamingResponse(rows(), media_type="text/csv")


async def main() -> None:
    configure_logging(level="INFO", json_output=False)

    transport = HttpxTransport(
        client_factory=lambda: httpx.AsyncClient(transport=httpx.ASGITransport(app=app)),
    )
    config = ClientConfig(
        base_url="http://demo",
        cache_ttl_seconds=5,
        max_retries=2,
        retry_delay_seconds=0.1,
        backoff_factor=2,
        timeout_seconds=1,
    )
    log = LoggerPipeline()

    async with Client(
        config,
        transport=transport,
        pipelines=[AuthPipeline(lambda: API_TOKEN), log],
    ) as client:
        print("\n--- cached GET ---")
        first = await client.get("/api/status")
        second = await client.get("/api/status")
        print(await first.json(), "from_cache =", second.from_cache)

        print("\n--- retried GET ---")
        result = await client.get("/api/flaky")
        print(await result.json())

        print("\n--- authorized POST ---")
        result = await client.post(
            "/api/payments",
            body=b'{"amount": 2500}',
            headers={"Content-Type": "application/json"},
        )
        print(await result.json())

        print("\n--- streamed download ---")
        result = await client.stream("/api/export.csv")
        async for chunk in result.aiter_bytes():
            print(chunk.decode().rstrip())

        print("\n--- cancelled call ---")
        token = CancelToken()
        call = asyncio.create_task(client.get("/api/slow", cancel_token=token))
        await asyncio.sleep(0.1)
        token.cancel()
        try:
            await call
        except RequestCancelledError as e:
            print("cancelled:", e.message)

        print("\n--- timed out call ---")
        try:
            await client.get("/api/slow")
        except RequestError as e:
            print(f"{e.kind.value}:", e.message)

    print("\n--- logged events ---")
    for event in log.history:
        print(event.type, event.method, event.url, event.status_code)

    print("\n--- metrics ---")
    print(generate_latest().decode())

    await transport.aclose()


if __name__ == "__main__":
    print("=" * 60)
    print("Request Engine Demo")
    print("=" * 60)
    asyncio.run(main())
