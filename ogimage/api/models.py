"""Pydantic models for API responses."""

from pydantic import BaseModel, ConfigDict, Field


class OgConfigResponse(BaseModel):
    """Public discovery document for clients building preview URLs."""

    model_config = ConfigDict(populate_by_name=True)

    endpoint: str
    signature_required: bool = Field(alias="signatureRequired")


class ImageDebugResponse(BaseModel):
    """How the ``image`` parameter of a request would be treated."""

    model_config = ConfigDict(populate_by_name=True)

    original_image: str = Field(alias="originalImage")
    reconstructed_image: str = Field(alias="reconstructedImage")
    is_valid_url: bool = Field(alias="isValidUrl")
    is_supported_format: bool = Field(alias="isSupportedFormat")
    all_params: dict[str, str] = Field(alias="allParams")
