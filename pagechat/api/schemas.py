from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class ChatRequest(BaseModel):
    # All optional so missing fields come back as a 400 with a readable message
    url: Optional[str] = None
    text: Optional[str] = None
    query: Optional[str] = None


class Citation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    document_ids: List[str] = Field(default_factory=list, alias="documentIds")


class ChatResponse(BaseModel):
    answer: str
    citations: List[Citation]
    sources: List[str]


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None
