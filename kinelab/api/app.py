"""FastAPI application exposing the kinematics engine to a renderer."""

from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from kinelab import __version__
from kinelab.engine import SimulationEngine, get_provider
from kinelab.models.body import Body, INITIAL_BODY_A, INITIAL_BODY_B
from kinelab.physics.kinematics import SimulationConfig, evaluate
from kinelab.reasoning.explainer import Language, OutcomeExplainer

app = FastAPI(
    title="Kinelab",
    description="Two-body kinematics simulation: sampled motion, crossing point and explanations",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ----- Request/Response Models -----

class SimulateRequest(BaseModel):
    """Request to sample two bodies."""
    body_a: Body = INITIAL_BODY_A
    body_b: Body = INITIAL_BODY_B
    step: float = Field(0.1, gt=0)
    horizon: float = Field(20.0, ge=0)


class StateResponse(BaseModel):
    t: float
    x: float
    v: float


class CrossingResponse(BaseModel):
    t: float
    x: float


class SimulateResponse(BaseModel):
    """Sampled timeline and crossing point."""
    step: float
    horizon: float
    crossing: CrossingResponse | None
    timeline: list[dict]


class EvaluateRequest(BaseModel):
    """Request to evaluate one body at a time."""
    body: Body
    t: float


class ExplainRequest(BaseModel):
    body_a: Body = INITIAL_BODY_A
    body_b: Body = INITIAL_BODY_B
    language: Language = Language.EN


class ExplainResponse(BaseModel):
    crossing: CrossingResponse | None
    explanation: str


def _crossing_response(crossing) -> CrossingResponse | None:
    return CrossingResponse(**crossing.to_dict()) if crossing else None


# ----- Endpoints -----

@app.get("/")
@app.get("/health")
async def root():
    """Health check."""
    return {
        "service": "Kinelab",
        "version": __version__,
        "status": "healthy",
    }


@app.post("/simulate", response_model=SimulateResponse)
async def simulate(request: SimulateRequest):
    """Sample both bodies over the horizon and detect where they meet."""
    try:
        engine = SimulationEngine(
            body_a=request.body_a,
            body_b=request.body_b,
            config=SimulationConfig(step=request.step, horizon=request.horizon),
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    snapshot = engine.snapshot

    return SimulateResponse(
        step=request.step,
        horizon=request.horizon,
        crossing=_crossing_response(snapshot.crossing),
        timeline=snapshot.timeline.to_records(),
    )


@app.post("/evaluate", response_model=StateResponse)
async def evaluate_state(request: EvaluateRequest):
    """Position and velocity of one body at an arbitrary time."""
    x, v = evaluate(request.body, request.t)
    return StateResponse(t=request.t, x=x, v=v)


@app.post("/explain", response_model=ExplainResponse)
async def explain(request: ExplainRequest):
    """Explain why the bodies meet or never meet."""
    try:
        provider = get_provider()
    except ValueError as e:
        raise HTTPException(status_code=503, detail=str(e))

    snapshot = SimulationEngine(body_a=request.body_a, body_b=request.body_b).snapshot
    text = await OutcomeExplainer(provider).explain(
        snapshot.body_a, snapshot.body_b, snapshot.crossing, request.language
    )

    return ExplainResponse(
        crossing=_crossing_response(snapshot.crossing),
        explanation=text,
    )
