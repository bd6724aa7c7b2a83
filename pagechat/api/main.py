from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from pagechat.api.schemas import ChatRequest, ChatResponse, ErrorResponse
from pagechat.config import Settings, get_settings
from pagechat.errors import InvalidRequestError, MissingCredentialsError
from pagechat.pipeline import RagPipeline, validate_input
from pagechat.provider import Provider, build_provider
import logging

# Logs
logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger("pagechat_api")


def _error(status_code: int, error: str, details: Optional[str] = None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=body)


def get_pipeline(request: Request) -> RagPipeline:
    """Return the app's pipeline, building the provider on first use if startup skipped it."""
    state = request.app.state
    if state.pipeline is None:
        state.pipeline = RagPipeline(build_provider(state.settings), state.settings)
        state.owns_provider = True
    return state.pipeline


def create_app(provider: Optional[Provider] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.pipeline is None:
            try:
                app.state.pipeline = RagPipeline(build_provider(settings), settings)
                app.state.owns_provider = True
            except MissingCredentialsError as e:
                # Keep serving; /api/chat will fail per request until configured.
                logger.warning(f"{e} /api/chat requests will fail until it is set.")
        yield
        if app.state.pipeline is not None and app.state.owns_provider:
            await app.state.pipeline.aclose()

    app = FastAPI(title="pagechat: ask questions about a web page, with citations", lifespan=lifespan)
    app.state.settings = settings
    app.state.pipeline = RagPipeline(provider, settings) if provider is not None else None
    app.state.owns_provider = False

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error(400, "Request body must be a JSON object with 'query' and 'url' or 'text'")

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.post(
        "/api/chat",
        response_model=ChatResponse,
        responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    )
    async def chat_endpoint(payload: ChatRequest, request: Request):
        try:
            validate_input(payload.url, payload.text, payload.query)
            pipeline = get_pipeline(request)
            return await pipeline.run(url=payload.url, text=payload.text, query=payload.query)
        except InvalidRequestError as e:
            return _error(400, str(e))
        except Exception as e:
            logger.exception("Error in chat API")
            return _error(500, "Internal Server Error", details=str(e))

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
