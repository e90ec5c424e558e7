"""HTTP API for external integrations.

``shell-agent serve`` exposes the generation pipeline as a small JSON
API so editors and other tools can ask for commands without shelling
out.  The server only generates and classifies commands; it never
executes them.
"""

from __future__ import annotations

from typing import Callable, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .client import ShellAgent
from .config import Config, load_config
from .ollama import GenerationFailed, ProviderError, ServiceUnavailable


def create_app(agent_factory: Optional[Callable[[], ShellAgent]] = None,
               config: Optional[Config] = None) -> FastAPI:
    """Build the FastAPI application.

    :param agent_factory: Returns the agent used for each request.  By
      default a fresh agent is built from the configuration per request
      so config edits are picked up without a restart.
    """
    if agent_factory is None:
        def agent_factory() -> ShellAgent:
            return ShellAgent.from_config(config or load_config())

    app = FastAPI(title="Shell Agent API", version="1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.post("/generate_command")
    def generate_command(request: dict) -> dict:
        prompt_text = request.get("input") or request.get("prompt")
        if not prompt_text or not isinstance(prompt_text, str) or not prompt_text.strip():
            raise HTTPException(status_code=400, detail="'input' field must be a non-empty string")
        agent = agent_factory()
        try:
            response = agent.generate_command(prompt_text)
        except ServiceUnavailable as exc:
            raise HTTPException(status_code=503, detail=str(exc))
        except GenerationFailed as exc:
            raise HTTPException(status_code=502, detail=str(exc))
        except ProviderError as exc:
            raise HTTPException(status_code=503, detail=str(exc))
        return response.to_dict()

    return app
