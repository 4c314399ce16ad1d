import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from matching_service import MatchingOptions, match_participants
from models import InputError, Participant
from pool_analysis import analyze_pool
from result_aggregator import result_to_dict, summarize_iterations, team_payloads
from unmatched_analysis import DiagnosticsConfig, analyze_unmatched

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
)
logger = logging.getLogger("api_server")

app = FastAPI(title="Case Match Team Formation Service")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # For development; refine for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ParticipantIn(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = ""
    college_name: Optional[str] = ""
    current_year: str
    preferred_team_size: int = Field(..., ge=2, le=4)
    team_preference: str
    availability: str
    experience: str
    core_strengths: List[str] = Field(default_factory=list, max_length=3)
    preferred_roles: List[str] = Field(default_factory=list, max_length=2)
    case_preferences: List[str] = Field(default_factory=list, max_length=3)
    work_style: Optional[str] = ""


class MatchRequest(BaseModel):
    participants: List[ParticipantIn]
    strict_team_size_matching: bool = True
    strict_availability_matching: bool = True
    use_iterative_matching: bool = True
    max_iterations: Optional[int] = Field(None, ge=1)
    min_participants_per_iteration: int = Field(2, ge=0)
    max_consecutive_failures: int = Field(8, ge=1)
    min_team_compatibility: Optional[float] = Field(None, ge=0, le=100)
    deadline_seconds: Optional[float] = Field(None, gt=0)
    log_level: str = Field("detailed", pattern="^(minimal|detailed|verbose)$")
    include_diagnostics: bool = False
    quality_threshold: float = Field(70.0, ge=0, le=100)


class MatchResponse(BaseModel):
    teams: List[dict]
    payload: List[dict]
    unmatched: List[dict]
    statistics: dict
    iterations: Optional[int] = None
    iteration_history: Optional[List[dict]] = None
    stop_reason: Optional[str] = None
    iteration_summary: Optional[dict] = None
    diagnostics: Optional[dict] = None


class AnalyzeRequest(BaseModel):
    participants: List[ParticipantIn]


def _to_participants(items: List[ParticipantIn]) -> List[Participant]:
    return [Participant.from_record(item.model_dump()) for item in items]


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/match", response_model=MatchResponse)
async def match_endpoint(request: MatchRequest):
    options = MatchingOptions(
        strict_team_size_matching=request.strict_team_size_matching,
        strict_availability_matching=request.strict_availability_matching,
        use_iterative_matching=request.use_iterative_matching,
        max_iterations=request.max_iterations,
        min_participants_per_iteration=request.min_participants_per_iteration,
        max_consecutive_failures=request.max_consecutive_failures,
        min_team_compatibility=request.min_team_compatibility,
        deadline_seconds=request.deadline_seconds,
        log_level=request.log_level,
    )
    try:
        result = match_participants(_to_participants(request.participants), options)
        body: Dict[str, Any] = result_to_dict(result)
        body["payload"] = team_payloads(result)
        if result.iterations is not None:
            body["iteration_summary"] = summarize_iterations(result)
        if request.include_diagnostics:
            config = DiagnosticsConfig(quality_threshold=request.quality_threshold)
            body["diagnostics"] = analyze_unmatched(result, config).to_dict()
        return MatchResponse(**body)
    except InputError as exc:
        logger.warning("Rejected match request: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        logger.exception("Matching failed")
        raise HTTPException(status_code=500, detail=str(exc))


@app.post("/analyze")
async def analyze_endpoint(request: AnalyzeRequest):
    try:
        return analyze_pool(_to_participants(request.participants))
    except InputError as exc:
        logger.warning("Rejected analyze request: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        logger.exception("Pool analysis failed")
        raise HTTPException(status_code=500, detail=str(exc))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
