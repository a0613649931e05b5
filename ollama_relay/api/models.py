from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ollama_relay.api.deps import get_directory
from ollama_relay.core.directory import ModelDirectory
from ollama_relay.schemas.chat import ErrorResponse, ModelListResponse

router = APIRouter()


@router.get("/models", response_model=ModelListResponse, responses={500: {"model": ErrorResponse}})
async def get_models(directory: ModelDirectory = Depends(get_directory)):
    """List models installed on the inference server."""
    listing = await directory.list_models()
    if listing.error:
        # Callers fall back to a manually entered model name
        return JSONResponse({"error": listing.error, "models": []}, status_code=500)
    return ModelListResponse(models=listing.models)
