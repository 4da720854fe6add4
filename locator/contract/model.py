"""
Pydantic models of a contract descriptor file.

A descriptor names the files a contract is assembled from:

  params:   {location, hash}
  template: {format: mustache, file: {location, hash}}
  upstream: {location, hash}        (optional)

Locations may be relative to the descriptor itself.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..types import RelativeRef


class FileRefModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    location: str = Field(min_length=1)
    hash: str = ""

    def as_ref(self) -> RelativeRef:
        return RelativeRef(location=self.location, hash=self.hash)


class TemplateModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    format: Literal["mustache"] = "mustache"
    file: FileRefModel


class ContractDescriptor(BaseModel):
    """Top-level descriptor; unknown keys are kept (other tools add their own)."""
    model_config = ConfigDict(extra="allow")

    params: FileRefModel
    template: TemplateModel
    upstream: Optional[FileRefModel] = None


__all__ = ["FileRefModel", "TemplateModel", "ContractDescriptor"]
