# symtex_ledger/integration/langgraph.py
from typing import Any, Dict, Optional, Sequence
from uuid import UUID

from langchain_core.callbacks import BaseCallbackHandler

from symtex_ledger.integration.auditor import AppendOutcome, LedgerAuditor


def _model_name(response: Any) -> Optional[str]:
    llm_output = getattr(response, "llm_output", None) or {}
    return llm_output.get("model_name") or llm_output.get("model")


def _total_tokens(response: Any) -> Optional[int]:
    llm_output = getattr(response, "llm_output", None) or {}
    usage = llm_output.get("token_usage") or llm_output.get("usage") or {}
    total = usage.get("total_tokens")
    return total if isinstance(total, int) else None


class _LedgerCallbackHandler(BaseCallbackHandler):
    """
    Records a Cognate's chain runs, LLM calls, tool calls and failures as
    ledger entries.

    LangChain finishes child runs before their parents, so a chain run is
    recorded when it starts; everything nested under it links to that entry.
    Only open runs are tracked, and each is forgotten when it ends.
    """

    def __init__(self, auditor: "CognateLedgerAuditor"):
        self.auditor = auditor
        self._tools: Dict[UUID, str] = {}
        # open run id → its parent run id, for walking up to a recorded ancestor
        self._parents: Dict[UUID, Optional[UUID]] = {}
        # open chain run id → ledger entry id
        self._entries: Dict[UUID, str] = {}

    def on_chain_start(self, serialized: Optional[Dict[str, Any]], inputs: Any, *, run_id: UUID,
                       parent_run_id: Optional[UUID] = None, **kwargs):
        name = kwargs.get("name") or (serialized or {}).get("name") or "chain"
        self._parents[run_id] = parent_run_id
        outcome = self._record(
            parent_run_id,
            what={"type": "chain_run", "description": f"Started {name}",
                  "category": "action", "severity": "info", "status": "in_progress"},
            how={"approach": "hybrid"},
        )
        if outcome.ok:
            self._entries[run_id] = outcome.entry.id

    def on_chain_end(self, outputs: Any, *, run_id: UUID, **kwargs):
        self._finish(run_id)

    def on_chain_error(self, error: BaseException, *, run_id: UUID, **kwargs):
        self._record_error(run_id, "Chain run failed", error)
        self._finish(run_id)

    def on_llm_end(self, response: Any, *, run_id: UUID, parent_run_id: Optional[UUID] = None, **kwargs):
        model = _model_name(response)
        tokens = _total_tokens(response)
        self._record(
            parent_run_id,
            what={"type": "llm_call", "description": f"Completed model call{f' ({model})' if model else ''}",
                  "category": "action", "severity": "info", "status": "completed"},
            how={"approach": "neural", "model": model,
                 "resources": {"tokens": tokens} if tokens is not None else None},
        )

    def on_llm_error(self, error: BaseException, *, run_id: UUID, parent_run_id: Optional[UUID] = None, **kwargs):
        self._record_error(parent_run_id, "Model call failed", error)

    def on_tool_start(self, serialized: Dict[str, Any], input_str: str, *, run_id: UUID,
                      parent_run_id: Optional[UUID] = None, **kwargs):
        self._tools[run_id] = (serialized or {}).get("name") or "tool"
        self._parents[run_id] = parent_run_id

    def on_tool_end(self, output: Any, *, run_id: UUID, parent_run_id: Optional[UUID] = None, **kwargs):
        tool = self._tools.pop(run_id, "tool")
        self._parents.pop(run_id, None)
        self._record(
            parent_run_id,
            what={"type": "tool_call", "description": f"Called tool {tool}",
                  "category": "action", "severity": "info", "status": "completed",
                  "result": str(output)[:500]},
            how={"approach": "tool", "tools": [tool]},
        )

    def on_tool_error(self, error: BaseException, *, run_id: UUID, parent_run_id: Optional[UUID] = None, **kwargs):
        tool = self._tools.pop(run_id, "tool")
        self._parents.pop(run_id, None)
        self._record_error(parent_run_id, f"Tool {tool} failed", error, tools=[tool])

    def _finish(self, run_id: UUID) -> None:
        self._entries.pop(run_id, None)
        self._parents.pop(run_id, None)

    def _parent_entry(self, run_id: Optional[UUID]) -> Optional[str]:
        """Entry id of the nearest recorded run at or above `run_id`."""
        while run_id is not None:
            if run_id in self._entries:
                return self._entries[run_id]
            run_id = self._parents.get(run_id)
        return None

    def _record_error(self, parent_run_id, description: str, error: BaseException, tools=()):
        return self._record(
            parent_run_id,
            what={"type": "run_error", "description": description, "category": "error",
                  "severity": "error", "status": "failed", "result": f"{type(error).__name__}: {error}"[:500]},
            how={"approach": "neural", "tools": list(tools)},
            trigger="error",
        )

    def _record(self, parent_run_id, what: dict, how: dict, trigger: str = "automation") -> AppendOutcome:
        return self.auditor.record({
            "who": self.auditor.actor,
            "what": what,
            "where": self.auditor.where,
            "why": {"trigger": trigger, "goal": self.auditor.goal},
            "how": how,
            "tags": list(self.auditor.tags),
            "parent_id": self._parent_entry(parent_run_id),
        })


class CognateLedgerAuditor(LedgerAuditor):
    """LangChain / LangGraph integration: pass `.callback` in the run config."""

    def __init__(
        self,
        cognate_id: str,
        cognate_name: str = "",
        ledger=None,
        storage_uri: Optional[str] = None,
        space_id: Optional[str] = None,
        project_id: Optional[str] = None,
        goal: Optional[str] = None,
        tags: Sequence[str] = (),
    ):
        super().__init__(ledger=ledger, storage_uri=storage_uri)
        self.actor = {"type": "cognate", "id": cognate_id, "name": cognate_name}
        self.where = {"space_id": space_id, "project_id": project_id}
        self.goal = goal
        self.tags = tuple(tags)
        self._callback = _LedgerCallbackHandler(self)

    @property
    def callback(self) -> BaseCallbackHandler:
        return self._callback

    def open_runs(self) -> Dict[UUID, str]:
        """Chain runs that have started but not ended, mapped to their ledger entry ids."""
        return dict(self._callback._entries)


__all__ = ["CognateLedgerAuditor", "AppendOutcome"]
