import logging
import os
from typing import Literal, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .models import (
    DEFAULT_MAX_ANALYSIS_LENGTH,
    AnalysisOptions,
    CharacterRegistry,
    OutlineEntry,
    PageLocation,
    RegistryEntry,
    results_to_dict,
)
from .pipeline import run_pipeline

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
MAX_ANALYSIS_LENGTH = int(os.getenv("MAX_ANALYSIS_LENGTH", str(DEFAULT_MAX_ANALYSIS_LENGTH)))

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(message)s")
log = logging.getLogger(__name__)

app = FastAPI(title="Manuscript Analyzer", description="Craft metrics for prose, screenplay and poetry manuscripts")


class OutlineEntryIn(BaseModel):
    title: str = ""
    level: int = 0
    range_start: int = 0
    range_end: int = 0


class PageLocationIn(BaseModel):
    location: int
    page: int


class CharacterIn(BaseModel):
    key: str
    aliases: list[str] = Field(default_factory=list)


class AnalyzeRequest(BaseModel):
    text: str
    style: Literal["prose", "screenplay", "poetry"] = "prose"
    outline: list[OutlineEntryIn] = Field(default_factory=list)
    page_mapping: list[PageLocationIn] = Field(default_factory=list)
    page_count_override: Optional[int] = None
    characters: list[CharacterIn] = Field(default_factory=list)
    character_names: list[str] = Field(default_factory=list)
    guess_character_names: bool = False


class AnalyzeResponse(BaseModel):
    results: dict
    report: dict


def _options(request: AnalyzeRequest) -> AnalysisOptions:
    return AnalysisOptions(
        style=request.style,
        outline=tuple(OutlineEntry(o.title, o.level, o.range_start, o.range_end) for o in request.outline),
        page_mapping=tuple(PageLocation(p.location, p.page) for p in request.page_mapping),
        page_count_override=request.page_count_override,
        registry=CharacterRegistry(tuple(RegistryEntry(c.key, tuple(c.aliases)) for c in request.characters)),
        character_names=tuple(request.character_names),
        guess_character_names=request.guess_character_names,
        max_analysis_length=MAX_ANALYSIS_LENGTH,
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    body = await request.body()
    log.error("422 validation error on %s %s", request.method, request.url.path)
    log.error("Request body: %s", body.decode(errors="replace")[:2000])
    log.error("Validation errors: %s", exc.errors())
    return JSONResponse(status_code=422, content={"detail": exc.errors(), "body_preview": body.decode(errors="replace")[:500]})


@app.post("/analyze", response_model=AnalyzeResponse)
def analyze(request: AnalyzeRequest):
    log.info("POST /analyze — style=%s text_length=%d characters=%d",
             request.style, len(request.text), len(request.characters))

    try:
        options = _options(request)
    except ValueError as e:
        log.error("Invalid analysis options: %s", e)
        raise HTTPException(status_code=422, detail=str(e))

    result = run_pipeline(request.text, options)
    return AnalyzeResponse(results=results_to_dict(result.results), report=result.report)


@app.get("/health")
async def health():
    return {"status": "ok"}
