from src.schemas.api.flashcards import ErrorDetail, ExportFormat, GenerateRequest

__all__ = [
    "ErrorDetail",
    "ExportFormat",
    "GenerateRequest",
]
