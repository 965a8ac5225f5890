"""FastAPI server: exposes the review panel and the scoring functions."""
from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from panel.aggregator import build_consensus
from panel.clarity import evaluate_clarity
from panel.config import DEFAULT_DEPTH_MODE, DiscussionConfig
from panel.runner import evaluate_commit
from panel.schemas import AnalysisPayload, ClarityEvaluation, CommitContext, CommitEvaluation, ConsensusMetricSet
from scoring.baci import BaciConfig, BaciDataPoint, BaciResult, InvalidBaciInput, compute_baci

logger = logging.getLogger(__name__)

app = FastAPI(title="Commit Review Panel API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


class EvaluateRequest(BaseModel):
    commit: CommitContext
    depth: str = DEFAULT_DEPTH_MODE
    discussion: DiscussionConfig = Field(default_factory=DiscussionConfig)


class ClarityRequest(BaseModel):
    text: str
    threshold: float = Field(default=0.8, ge=0.0, le=1.0)


class BaciRequest(BaseModel):
    points: list[BaciDataPoint]
    config: BaciConfig = Field(default_factory=BaciConfig)


@app.post("/evaluate", response_model=CommitEvaluation)
async def evaluate(req: EvaluateRequest) -> CommitEvaluation:
    """Run every panel role on the commit and return the consensus."""
    try:
        return await evaluate_commit(req.commit, depth=req.depth, discussion=req.discussion)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@app.post("/clarity", response_model=ClarityEvaluation)
async def clarity(req: ClarityRequest) -> ClarityEvaluation:
    return evaluate_clarity(req.text, req.threshold)


@app.post("/consensus", response_model=ConsensusMetricSet)
async def consensus(payloads: list[AnalysisPayload]) -> ConsensusMetricSet:
    """Reconcile already-finalized agent payloads for one commit."""
    return build_consensus(payloads)


@app.post("/baci", response_model=list[BaciResult])
async def baci(req: BaciRequest) -> list[BaciResult]:
    try:
        return compute_baci(req.points, req.config)
    except InvalidBaciInput as e:
        logger.warning("Rejected BACI request: %s", e)
        raise HTTPException(status_code=422, detail=str(e))
