import logging
import threading
import time
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from tripwise.agent import TravelReasoningAgent, build_agent
from tripwise.config import get_settings
from tripwise.middleware.event_collector import get_events, reset_events
from tripwise.schema import AgentFailure

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)

AgentFactory = Callable[[], TravelReasoningAgent]


class CompletionRequest(BaseModel):
    thread_id: str
    input: str


class AgentPool:
    """One agent, and therefore one conversation memory, per thread id.

    Each thread id also gets its own lock so that runs and clears on one
    conversation never overlap.
    """

    def __init__(self, factory: AgentFactory):
        self._factory = factory
        self._agents: dict[str, TravelReasoningAgent] = {}
        self._thread_locks: dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    def get(self, thread_id: str) -> TravelReasoningAgent:
        with self._lock:
            agent = self._agents.get(thread_id)
            if agent is None:
                logger.info("Creating agent for thread_id=%s", thread_id)
                agent = self._agents[thread_id] = self._factory()
            return agent

    def peek(self, thread_id: str) -> Optional[TravelReasoningAgent]:
        with self._lock:
            return self._agents.get(thread_id)

    def lock(self, thread_id: str) -> threading.Lock:
        with self._lock:
            return self._thread_locks.setdefault(thread_id, threading.Lock())

    def __len__(self) -> int:
        return len(self._agents)


def create_app(agent_factory: Optional[AgentFactory] = None) -> FastAPI:
    pool = AgentPool(agent_factory or (lambda: build_agent(get_settings())))

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        logger.info("Tripwise service started")
        yield
        logger.info("Tripwise service shutting down")

    app = FastAPI(title="Tripwise Travel Assistant", lifespan=lifespan)
    app.state.agents = pool

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("%s %s", request.method, request.url.path)
        start = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000
        logger.info("%s %s completed %d in %.2fms", request.method, request.url.path, response.status_code, duration_ms)
        return response

    @app.get("/health")
    async def health():
        return {"status": "ok", "threads": len(pool)}

    # Sync handler: the agent blocks on the model and the tools, so it runs in the threadpool.
    @app.post("/completions")
    def completions(req: CompletionRequest):
        agent = pool.get(req.thread_id)
        logger.info("Processing message for thread_id=%s", req.thread_id)
        with pool.lock(req.thread_id):
            reset_events()
            result = agent.process_message(req.input)
            events = get_events()

        if isinstance(result, AgentFailure):
            return JSONResponse(
                status_code=500,
                content={"error": result.error, "details": result.details, "middleware_events": events},
            )

        return {
            "thread_id": req.thread_id,
            "content": result.content,
            "query_type": result.query_type.value,
            "tools_used": [inv.model_dump(mode="json") for inv in result.tools_used],
            "steps": result.steps,
            "duration_ms": result.duration_ms,
            "corrected_domains": result.corrected_domains,
            "followup_iterations": result.followup_iterations,
            "timestamp": result.timestamp.isoformat(),
            "middleware_events": events,
        }

    @app.get("/threads/{thread_id}/history")
    def history(thread_id: str):
        agent = pool.peek(thread_id)
        return {
            "thread_id": thread_id,
            "messages": agent.get_history() if agent else [],
            "stats": agent.get_stats() if agent else None,
        }

    @app.delete("/threads/{thread_id}/history")
    def clear_history(thread_id: str):
        agent = pool.peek(thread_id)
        if agent is not None:
            with pool.lock(thread_id):
                agent.clear_history()
        return {"thread_id": thread_id, "cleared": agent is not None}

    return app


app = create_app()
