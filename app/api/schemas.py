"""Request and response bodies of the HTTP API."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SignUrlRequest(CamelModel):
    file_name: str = ""
    content_type: str = ""


class SignUrlResponse(CamelModel):
    success: bool = True
    signed_url: str
    file_name: str
    bucket_name: str
    gcs_uri: str


class StorageAnalyzeRequest(CamelModel):
    file_name: str = ""
    mime_type: str = "video/mp4"
    size_bytes: int = 0


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
