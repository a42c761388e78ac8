"""
Keyword Tokenizer Endpoints
===========================

Expose the authoring-side keyword parser so editors can preview how a
keyword field will be split before saving a rule.
"""

from fastapi import APIRouter

from lorebook.api.schemas.base import ResponseSchema
from lorebook.api.schemas.rules import KeywordFormatRequest, KeywordParseRequest, KeywordsResponse
from lorebook.core.activation.keywords import format_keywords, parse_keywords

router = APIRouter(prefix="/keywords", tags=["keywords"])


@router.post("/parse", response_model=ResponseSchema[KeywordsResponse])
async def parse(data: KeywordParseRequest):
    """Split raw keyword text into tokens."""
    tokens = parse_keywords(data.text)
    return ResponseSchema(
        data=KeywordsResponse(keywords=tokens, formatted=format_keywords(tokens)),
        message=f"Parsed {len(tokens)} keywords",
    )


@router.post("/format", response_model=ResponseSchema[KeywordsResponse])
async def format_(data: KeywordFormatRequest):
    """Render tokens back into text that parses to the same tokens."""
    formatted = format_keywords(data.keywords)
    return ResponseSchema(
        data=KeywordsResponse(keywords=parse_keywords(formatted), formatted=formatted),
    )
