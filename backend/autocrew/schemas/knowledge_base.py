from pydantic import BaseModel, Field, field_validator
from uuid import UUID
from datetime import datetime

ALLOWED_MIME_TYPES = {
    "application/pdf": "PDF",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "DOCX",
    "text/plain": "TXT",
    "text/markdown": "MD",
    "text/csv": "CSV",
    "application/vnd.ms-excel": "XLS",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": "XLSX",
}

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB


class DocumentCreate(BaseModel):
    filename: str = Field(min_length=1, max_length=255)
    mime_type: str
    file_size: int

    @field_validator("mime_type")
    @classmethod
    def supported_type(cls, value: str) -> str:
        if value not in ALLOWED_MIME_TYPES:
            allowed = ", ".join(sorted(set(ALLOWED_MIME_TYPES.values())))
            raise ValueError(f'File type "{value}" is not supported. Allowed types: {allowed}')
        return value

    @field_validator("file_size")
    @classmethod
    def within_size_limit(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("File is empty")
        if value > MAX_FILE_SIZE:
            raise ValueError(
                f"File size ({value / (1024 * 1024):.2f} MB) exceeds maximum allowed size of "
                f"{MAX_FILE_SIZE // (1024 * 1024)} MB"
            )
        return value


class DocumentResponse(BaseModel):
    id: UUID
    crew_id: UUID
    org_id: UUID
    filename: str
    mime_type: str
    file_size: int
    status: str
    chunk_count: int
    created_at: datetime

    class Config:
        from_attributes = True
