"""Natural-language query extraction endpoint."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError

from fandango_explorer.schemas import ErrorResponse, ExtractRequest, SearchRequest
from fandango_explorer.services.query_extractor import QueryExtractorClient

router = APIRouter()


def get_query_extractor() -> QueryExtractorClient:
    return QueryExtractorClient()


@router.post(
    "/extract",
    response_model=SearchRequest,
    response_model_exclude_none=True,
    responses={502: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def extract_query(
    body: ExtractRequest,
    client: QueryExtractorClient = Depends(get_query_extractor),
) -> SearchRequest:
    """Turn a free-text question into search parameters for ``/search``."""
    if not client.configured:
        raise HTTPException(status_code=503, detail="Query extraction service is not configured")
    params = await client.extract(body.query)
    try:
        return SearchRequest.model_validate(params)
    except ValidationError as e:
        raise HTTPException(
            status_code=502, detail=f"Query extraction service returned invalid parameters: {e.error_count()} errors"
        ) from e
