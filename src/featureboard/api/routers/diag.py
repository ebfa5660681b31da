from __future__ import annotations

from fastapi import APIRouter

from ...services.model_router import ModelRouter

router = APIRouter(prefix="/diag", tags=["diagnostics"])


@router.get("/llm")
def diag_llm():
    """Report which provider would serve AI calls; never exposes the key itself."""
    info = ModelRouter().describe()
    # Without a key every AI route answers from the fallback table
    info["ready"] = bool(info["has_api_key"])
    info["fallback_active"] = not info["ready"]
    return info
