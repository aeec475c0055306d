"""
Chat orchestrator using LangGraph.

Coordinates one chat answer from raw request to ChatResponse: validation,
table and index loading, parsing, entity resolution, routing, deterministic
analysis, and the optional model paths (bounded tool loop or guarded
rephrase).

Features:
    - Stateful execution with LangGraph StateGraph
    - Conditional edges for validation failure, clarification and LLM mode
    - TTL caches for tables and per-snapshot product indexes
    - Per-node timing and request-scoped structured logging
    - ``answer`` never raises; every failure becomes a response warning
"""

import operator
import time
from functools import wraps
from typing import Annotated, Any, Callable, Literal, Optional, TypedDict
from uuid import uuid4

from langgraph.graph import END, StateGraph

from src.analyzers.base import AnalyzerContext
from src.analyzers.category_data import normalize_category_data
from src.analyzers.metrics_engine import analyze
from src.config.settings import Settings, get_settings
from src.data.cache import KeyedTtlCache, TtlCache
from src.data.providers import JsonFileTableProvider, TableProvider
from src.models.schemas import ChatIntent, ChatResponse
from src.parsing.query_parser import parse_query
from src.query.catalog import Tables
from src.resolution.entity_resolver import resolve_entities
from src.resolution.product_index import ProductIndex, build_product_index
from src.routing.intent_router import route_intent
from src.services.doc_tool import source_files_from_tables
from src.services.llm_service import LLMClient
from src.services.prompts import QUICK_ACTIONS
from src.services.rephrase import rephrase_response
from src.services.tool_loop import ToolContext, missing_key_response, run_tool_loop
from src.services.validation_service import ValidationService
from src.utils.logger import LogContext, get_logger
from src.utils.retry import (
    ChatValidationError,
    DataUnavailableError,
    ErrorHandler,
    LLMServiceError,
)

logger = get_logger(__name__)


# =============================================================================
# Constants
# =============================================================================

UNEXPECTED_ANSWER = "I could not process that request safely. Please retry with a shorter question."
UNEXPECTED_WARNING = "The chat service encountered an unexpected parsing error."


# =============================================================================
# Chat State Definition (TypedDict for LangGraph)
# =============================================================================

class ChatStateDict(TypedDict, total=False):
    """
    TypedDict-based chat state for LangGraph.

    Nodes return partial updates; ``errors`` accumulates across nodes.
    """
    # Identifiers
    request_id: str

    # Input
    message: str
    category_id: str
    snapshot_date: str
    target_brand: Optional[str]
    pathname: Optional[str]

    # Step outputs
    tables: Tables
    index: ProductIndex
    plan: Any
    resolution: Any
    decision: Any
    context: AnalyzerContext
    response: ChatResponse

    # Status tracking
    status: str
    errors: Annotated[list[str], operator.add]
    step_timings: dict


def track_timing(func: Callable):
    """Decorator to track node execution timing."""
    @wraps(func)
    async def wrapper(self, state: ChatStateDict) -> dict[str, Any]:
        start_time = time.perf_counter()
        node_name = func.__name__.strip("_").replace("_node", "")
        result = await func(self, state)
        step_timings = dict(state.get("step_timings", {}))
        step_timings[node_name] = round((time.perf_counter() - start_time) * 1000, 2)
        result["step_timings"] = step_timings
        logger.debug("Completed node", node=node_name, duration_ms=step_timings[node_name])
        return result

    return wrapper


def error_response(message: str, warnings: Optional[list[str]] = None) -> ChatResponse:
    """Degraded answer carrying a failure explanation."""
    return ChatResponse(
        intent=ChatIntent.UNKNOWN.value,
        answer=message,
        suggested_questions=QUICK_ACTIONS[:3],
        warnings=warnings if warnings is not None else [message],
    )


def known_category(tables: Tables, category_id: str) -> bool:
    if any(row.get("category_id") == category_id for row in tables.get("categories", [])):
        return True
    return any(row.get("category_id") == category_id for row in tables.get("snapshots", []))


# =============================================================================
# Orchestrator
# =============================================================================

class ChatOrchestrator:
    """
    LangGraph-based orchestrator for chat answers.

    Example:
        >>> orchestrator = ChatOrchestrator(provider=JsonFileTableProvider("tables.json"))
        >>> response = await orchestrator.answer(
        ...     "How did we do this month?", "code_reader_scanner", "2025-06-01"
        ... )
        >>> print(response.answer)
    """

    def __init__(
        self,
        provider: Optional[TableProvider] = None,
        settings: Optional[Settings] = None,
        llm_client: Optional[LLMClient] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            provider: Table provider (defaults to the configured DATA_FILE)
            settings: Application settings (uses defaults if not provided)
            llm_client: Pre-configured model client (created lazily when a key is set)
            clock: Monotonic clock for the caches, mainly for tests
        """
        self.settings = settings or get_settings()
        if provider is None:
            if self.settings.data_file is None:
                raise DataUnavailableError("No table provider given and DATA_FILE is not set.")
            provider = JsonFileTableProvider(self.settings.data_file)
        self.provider = provider
        self._llm_client = llm_client
        self.validator = ValidationService(self.settings.message_max_length)

        cache_clock = {"clock": clock} if clock is not None else {}
        self._tables = TtlCache(
            provider.load_tables,
            ttl_seconds=self.settings.table_cache_ttl_seconds,
            name="tables",
            **cache_clock,
        )
        self._indexes: KeyedTtlCache[Optional[ProductIndex]] = KeyedTtlCache(
            ttl_seconds=self.settings.index_cache_ttl_seconds,
            name="product_index",
            **cache_clock,
        )

        self._graph = self._build_graph()

    async def __aenter__(self) -> "ChatOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._llm_client is not None:
            await self._llm_client.close()

    @property
    def llm_client(self) -> Optional[LLMClient]:
        """Model client, or None when no API key is configured."""
        if self._llm_client is None and self.settings.has_llm():
            try:
                self._llm_client = LLMClient(self.settings)
            except LLMServiceError as e:
                logger.warning("Model client unavailable", error=e.message)
                return None
        return self._llm_client

    def _build_graph(self) -> StateGraph:
        """
        Build the LangGraph state machine.

        Graph structure:
            validate -> load -> parse -> resolve -> route -> analyze
               |          |                                    |
               v          +---------(llm only)--------+        +-----------+-----------+
            finish        |                           |        |           |           |
                          v                           v        v           v           v
                        finish                     llm_loop  llm_loop   rephrase    finish
                                                      |        |           |
                                                      v        v           v
                                                    finish   finish      finish
        """
        graph = StateGraph(ChatStateDict)

        graph.add_node("validate", self._validate_node)
        graph.add_node("load", self._load_node)
        graph.add_node("parse", self._parse_node)
        graph.add_node("resolve", self._resolve_node)
        graph.add_node("route", self._route_node)
        graph.add_node("analyze", self._analyze_node)
        graph.add_node("llm_loop", self._llm_loop_node)
        graph.add_node("rephrase", self._rephrase_node)
        graph.add_node("finish", self._finish_node)

        graph.set_entry_point("validate")

        graph.add_conditional_edges(
            "validate",
            self._route_after_validate,
            {"continue": "load", "failed": "finish"},
        )
        graph.add_conditional_edges(
            "load",
            self._route_after_load,
            {"continue": "parse", "llm_only": "llm_loop", "failed": "finish"},
        )
        graph.add_edge("parse", "resolve")
        graph.add_edge("resolve", "route")
        graph.add_edge("route", "analyze")
        graph.add_conditional_edges(
            "analyze",
            self._route_after_analyze,
            {"llm_loop": "llm_loop", "rephrase": "rephrase", "finish": "finish"},
        )
        graph.add_edge("llm_loop", "finish")
        graph.add_edge("rephrase", "finish")
        graph.add_edge("finish", END)

        return graph.compile()

    # =========================================================================
    # Routing
    # =========================================================================

    def _route_after_validate(self, state: ChatStateDict) -> Literal["continue", "failed"]:
        return "failed" if state.get("status") == "failed" else "continue"

    def _route_after_load(self, state: ChatStateDict) -> Literal["continue", "llm_only", "failed"]:
        if state.get("status") == "failed":
            return "failed"
        if self.settings.llm_only_mode:
            return "llm_only"
        return "continue"

    def _route_after_analyze(self, state: ChatStateDict) -> Literal["llm_loop", "rephrase", "finish"]:
        """
        Pick the model path for a deterministic answer.

        Clarifications always finish. With a model configured, unknown or
        low-confidence answers go to the tool loop; confident answers to
        questions the parser was unsure about are rephrased.
        """
        decision = state.get("decision")
        response = state.get("response")
        if response is None or (decision is not None and decision.needs_clarification):
            return "finish"
        if not self.settings.has_llm():
            return "finish"

        threshold = self.settings.llm_confidence_threshold
        confidence = response.confidence if response.confidence is not None else 0.0
        if response.intent == ChatIntent.UNKNOWN.value or confidence < threshold:
            return "llm_loop"

        plan = state.get("plan")
        if self.settings.llm_rephrase_enabled and plan is not None and plan.confidence < threshold:
            return "rephrase"
        return "finish"

    # =========================================================================
    # Node Implementations
    # =========================================================================

    @track_timing
    async def _validate_node(self, state: ChatStateDict) -> dict[str, Any]:
        try:
            request = self.validator.validate_chat_request(
                state.get("message"),
                state.get("category_id"),
                state.get("snapshot_date"),
                state.get("target_brand"),
                state.get("pathname"),
            )
        except ChatValidationError as e:
            return {
                "status": "failed",
                "errors": [e.message],
                "response": error_response(e.message),
            }
        return {
            "message": request.message,
            "target_brand": request.target_brand,
            "status": "running",
        }

    def _load_index(
        self,
        tables: Tables,
        category_id: str,
        snapshot_date: str,
        generation: Optional[int] = None,
    ) -> Optional[ProductIndex]:
        # Keyed on the table load so an index never outlives the tables it was built from
        if generation is None:
            generation = self._tables.generation
        own_brands = tuple(self.settings.own_brand_keys())
        return self._indexes.get_or_load(
            (generation, category_id, snapshot_date, own_brands),
            lambda: build_product_index(tables, category_id, snapshot_date, own_brands),
        )

    @track_timing
    async def _load_node(self, state: ChatStateDict) -> dict[str, Any]:
        category_id = state["category_id"]
        snapshot_date = state["snapshot_date"]
        try:
            entry = self._tables.get_entry()
            tables = entry.value
            if not known_category(tables, category_id):
                raise DataUnavailableError(f"Unknown category: {category_id}")
            index = self._load_index(tables, category_id, snapshot_date, entry.generation)
            if index is None:
                raise DataUnavailableError(
                    f"Unknown snapshot date for category {category_id}: {snapshot_date}"
                )
        except DataUnavailableError as e:
            logger.info("Data unavailable", error=e.message)
            return {
                "status": "failed",
                "errors": [e.message],
                "response": error_response(e.message),
            }
        return {"tables": tables, "index": index}

    @track_timing
    async def _parse_node(self, state: ChatStateDict) -> dict[str, Any]:
        plan = parse_query(state["message"], state["category_id"])
        logger.info("Parsed question", intent=plan.intent, confidence=plan.confidence)
        return {"plan": plan}

    @track_timing
    async def _resolve_node(self, state: ChatStateDict) -> dict[str, Any]:
        resolution = resolve_entities(
            state["message"],
            state["index"],
            target_brand=state.get("target_brand"),
            plan=state["plan"],
        )
        return {"resolution": resolution}

    @track_timing
    async def _route_node(self, state: ChatStateDict) -> dict[str, Any]:
        decision = route_intent(state["plan"], state["resolution"])
        logger.info(
            "Routed request",
            analyzer=decision.analyzer.value,
            rule=decision.rule,
            clarification=decision.needs_clarification,
        )
        return {"decision": decision}

    @track_timing
    async def _analyze_node(self, state: ChatStateDict) -> dict[str, Any]:
        index = state["index"]
        context = AnalyzerContext(
            index=index,
            plan=state["plan"],
            resolution=state["resolution"],
            message=state["message"],
            category_data=normalize_category_data(index, state["tables"], self.settings.bucket_bounds()),
            target_brand=state.get("target_brand"),
            price_window_pct=self.settings.competitor_price_window_pct,
            price_window_abs=self.settings.competitor_price_window_abs,
            competitor_min_revenue=self.settings.competitor_min_revenue,
        )
        return {"context": context, "response": analyze(context, state["decision"])}

    @track_timing
    async def _llm_loop_node(self, state: ChatStateDict) -> dict[str, Any]:
        deterministic = state.get("response")
        client = self.llm_client
        if client is None:
            return {"response": missing_key_response() if deterministic is None else deterministic}

        tables = state["tables"]
        index = state["index"]
        result = await run_tool_loop(
            client,
            ToolContext(
                tables=tables,
                source_files=source_files_from_tables(tables),
                source_root=self.settings.source_root,
            ),
            message=state["message"],
            category_id=state["category_id"],
            snapshot_date=state["snapshot_date"],
            target_brand=state.get("target_brand"),
            max_rounds=self.settings.max_tool_rounds,
            pathname=state.get("pathname") or "/",
            own_brand_names=[index.brand_display(key) for key in self.settings.own_brand_keys()],
        )

        # A failed loop keeps the deterministic answer and reports why
        if result.intent == ChatIntent.UNKNOWN.value and deterministic is not None:
            merged = deterministic.model_copy(update={
                "warnings": [*deterministic.warnings, *result.warnings],
            })
            return {"response": ChatResponse.model_validate(merged.model_dump())}
        return {"response": result}

    @track_timing
    async def _rephrase_node(self, state: ChatStateDict) -> dict[str, Any]:
        deterministic = state["response"]
        client = self.llm_client
        if client is None:
            return {"response": deterministic}
        rewritten = await rephrase_response(client, state["message"], deterministic)
        return {"response": rewritten or deterministic}

    @track_timing
    async def _finish_node(self, state: ChatStateDict) -> dict[str, Any]:
        response = state.get("response") or error_response(UNEXPECTED_ANSWER, [UNEXPECTED_WARNING])
        logger.info(
            "Chat answer ready",
            intent=response.intent,
            confidence=response.confidence,
            warnings=len(response.warnings),
            step_timings=state.get("step_timings", {}),
        )
        return {"response": response, "status": state.get("status") or "completed"}

    # =========================================================================
    # Public API
    # =========================================================================

    async def answer(
        self,
        message: Any,
        category_id: Any,
        snapshot_date: Any,
        target_brand: Optional[str] = None,
        pathname: Optional[str] = None,
    ) -> ChatResponse:
        """
        Answer one analytics question.

        Args:
            message: Free-text question
            category_id: Dashboard category identifier
            snapshot_date: Snapshot month (``YYYY-MM-DD``)
            target_brand: Optional quick-action brand context
            pathname: Page the question was asked from

        Returns:
            ChatResponse; failures are reported through ``warnings``.
        """
        request_id = str(uuid4())
        initial_state: ChatStateDict = {
            "request_id": request_id,
            "message": message,
            "category_id": category_id,
            "snapshot_date": snapshot_date,
            "target_brand": target_brand,
            "pathname": pathname,
            "status": "pending",
            "errors": [],
            "step_timings": {},
        }

        with LogContext(
            request_id=request_id,
            category_id=category_id if isinstance(category_id, str) else None,
            snapshot_date=snapshot_date if isinstance(snapshot_date, str) else None,
        ):
            try:
                final_state = await self._graph.ainvoke(initial_state)
                return final_state["response"]
            except Exception as e:
                logger.error(
                    "Chat answer failed",
                    category=ErrorHandler.categorize_error(e),
                    error=str(e),
                    exc_info=True,
                )
                return error_response(UNEXPECTED_ANSWER, [UNEXPECTED_WARNING])

    def invalidate_caches(self) -> None:
        self._tables.invalidate()
        self._indexes.clear()


# =============================================================================
# Convenience Functions
# =============================================================================

async def answer(
    message: str,
    category_id: str,
    snapshot_date: str,
    target_brand: Optional[str] = None,
    provider: Optional[TableProvider] = None,
    settings: Optional[Settings] = None,
) -> ChatResponse:
    """
    One-shot answer with a short-lived orchestrator.

    Example:
        >>> response = await answer("Who is the market leader?", "dmm", "2025-06-01")
    """
    try:
        orchestrator = ChatOrchestrator(provider=provider, settings=settings)
    except DataUnavailableError as e:
        return error_response(e.message)
    async with orchestrator:
        return await orchestrator.answer(message, category_id, snapshot_date, target_brand)


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "ChatOrchestrator",
    "ChatStateDict",
    "answer",
    "error_response",
    "known_category",
    "UNEXPECTED_ANSWER",
    "UNEXPECTED_WARNING",
]
