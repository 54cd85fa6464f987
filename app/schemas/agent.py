from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ConfigDict, model_validator

from app.schemas.session import DraftInvoice, LastCreatedInvoice


class SessionCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    workspace_id: int = Field(alias="workspaceId")


class SessionSnapshot(BaseModel):
    """HTTP view of a voice session's state."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId")
    workspace_id: int = Field(alias="workspaceId")
    current_invoice: Optional[DraftInvoice] = Field(default=None, alias="currentInvoice")
    last_created_invoice: Optional[LastCreatedInvoice] = Field(
        default=None, alias="lastCreatedInvoice"
    )


class AgentRunRequest(BaseModel):
    prompt: str
    reset_conversation: bool = Field(default=False, alias="resetConversation")

    # Accept alias key 'input' or even a raw string body
    @model_validator(mode="before")
    @classmethod
    def coerce_prompt(cls, v):
        if isinstance(v, dict):
            if "prompt" in v:
                return v
            if "input" in v:
                v["prompt"] = v["input"]
                return v
        elif isinstance(v, str):
            return {"prompt": v}
        return v


class ToolCallRecord(BaseModel):
    name: Optional[str] = None
    input: Any = None
    output: Any = None
    error: Optional[str] = None


class AgentRunResponse(BaseModel):
    """HTTP response model for one agent turn."""

    model_config = ConfigDict(populate_by_name=True)

    output: str
    tool_calls: List[ToolCallRecord] = Field(default_factory=list, alias="toolCalls")
    session: SessionSnapshot


class ToolErrorResponse(BaseModel):
    error: str
    message: str


class AgentTool(BaseModel):
    name: str
    description: str


class AgentToolsResponse(BaseModel):
    tools: list[AgentTool]


class ToolCatalogEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str
    input_schema: Dict[str, Any] = Field(alias="inputSchema")
