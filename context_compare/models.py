from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field, validator


class TokenUsage(BaseModel):
    """Token counters reported by the model API for one or more calls."""
    input_tokens: int = Field(0, ge=0)
    output_tokens: int = Field(0, ge=0)
    cache_creation_input_tokens: int = Field(0, ge=0)
    cache_read_input_tokens: int = Field(0, ge=0)

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        return TokenUsage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            cache_creation_input_tokens=(
                self.cache_creation_input_tokens + other.cache_creation_input_tokens
            ),
            cache_read_input_tokens=(
                self.cache_read_input_tokens + other.cache_read_input_tokens
            ),
        )


class QueryRequest(BaseModel):
    """Question asked against the uploaded documents."""
    question: str = Field(..., min_length=1, max_length=4000)

    @validator("question")
    def validate_question(cls, v):
        """Ensure question is not just whitespace."""
        if not v.strip():
            raise ValueError("Question cannot be empty or only whitespace")
        return v.strip()


class UploadedDocument(BaseModel):
    id: int
    filename: str
    size: int


class UploadResponse(BaseModel):
    """Response after uploading a document."""
    success: bool = True
    document: UploadedDocument


class DocumentInfo(BaseModel):
    """Information about a stored document."""
    model_config = ConfigDict(populate_by_name=True)

    id: int
    filename: str
    size: int
    uploaded_at: datetime = Field(..., alias="uploadedAt")


class ListDocumentsResponse(BaseModel):
    documents: List[DocumentInfo]


class SelectedDoc(BaseModel):
    id: int
    filename: str


class CacheStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cache_creation_tokens: int = Field(..., alias="cacheCreationTokens")
    cache_read_tokens: int = Field(..., alias="cacheReadTokens")


class QueryAllResponse(BaseModel):
    """Answer produced with every stored document in context."""
    model_config = ConfigDict(populate_by_name=True)

    answer: str
    mode: str = "load_all"
    docs_loaded: int = Field(..., alias="docsLoaded")
    usage: TokenUsage
    cost: float
    total_spent: float = Field(..., alias="totalSpent")
    response_time: int = Field(..., alias="responseTime")


class QuerySmartResponse(BaseModel):
    """Answer produced from the model-selected subset of documents."""
    model_config = ConfigDict(populate_by_name=True)

    answer: str
    mode: str = "smart"
    docs_loaded: int = Field(..., alias="docsLoaded")
    selected_docs: List[SelectedDoc] = Field(..., alias="selectedDocs")
    usage: TokenUsage
    cost: float
    total_spent: float = Field(..., alias="totalSpent")
    response_time: int = Field(..., alias="responseTime")
    selection_time: int = Field(..., alias="selectionTime")
    selection_fallback: bool = Field(False, alias="selectionFallback")
    cache_stats: CacheStats = Field(..., alias="cacheStats")


class BudgetResponse(BaseModel):
    spent: float
    limit: float
    remaining: float


class ResetResponse(BaseModel):
    success: bool
    message: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    total_documents: int
    total_characters: int
    budget_remaining: float
