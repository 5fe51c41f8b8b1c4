import logging
from datetime import datetime
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel

import config
from domain import (
    AllocationOutcome,
    PriorityLevel,
    Slot,
    SlotCapacity,
    Token,
    TokenSource,
    TokenStatus,
)
from engine import TokenEngine
from store import InMemoryStore, NotFoundError

logger = logging.getLogger(__name__)


class CreateTokenRequest(BaseModel):
    doctor_id: str
    slot_id: str
    source: TokenSource
    priority: Optional[PriorityLevel] = None  # derived from source when omitted
    movable: Optional[bool] = None
    patient_id: Optional[str] = None


class DoctorSummary(BaseModel):
    id: str
    name: str
    department: str
    slots_count: int


class TokenResponse(BaseModel):
    id: str
    patient_id: str
    doctor_id: str
    slot_id: str
    source: TokenSource
    priority: int
    status: TokenStatus
    movable: bool
    created_at: datetime
    checked_in_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class CapacityResponse(BaseModel):
    max: int
    emergency_buffer: int
    priority_buffer: int


class SlotCounts(BaseModel):
    id: str
    tokens_count: int
    waitlist_count: int
    capacity: CapacityResponse


class DecisionResponse(BaseModel):
    status: AllocationOutcome
    reason: str
    allocated_token: Optional[TokenResponse] = None
    displaced_token: Optional[TokenResponse] = None


class AllocationResponse(BaseModel):
    result: DecisionResponse
    slot: SlotCounts


class CancelResponse(BaseModel):
    message: str
    removed: bool
    token: TokenResponse
    promoted: Optional[TokenResponse] = None
    slot: SlotCounts


def to_token_response(t: Token) -> TokenResponse:
    return TokenResponse(
        id=t.id,
        patient_id=t.patient_id,
        doctor_id=t.doctor_id,
        slot_id=t.slot_id,
        source=t.source,
        priority=int(t.priority),
        status=t.status,
        movable=t.movable,
        created_at=t.created_at,
        checked_in_at=t.checked_in_at,
        completed_at=t.completed_at,
    )


def to_capacity_response(c: SlotCapacity) -> CapacityResponse:
    return CapacityResponse(
        max=c.max,
        emergency_buffer=c.emergency_buffer,
        priority_buffer=c.priority_buffer,
    )


def to_slot_counts(slot: Slot) -> SlotCounts:
    return SlotCounts(
        id=slot.id,
        tokens_count=len(slot.occupants),
        waitlist_count=len(slot.waitlist),
        capacity=to_capacity_response(slot.capacity),
    )


def get_engine(request: Request) -> TokenEngine:
    return request.app.state.engine


def create_app(store: Optional[InMemoryStore] = None) -> FastAPI:
    app = FastAPI(title=config.APP_TITLE)
    app.state.engine = TokenEngine(store or InMemoryStore.with_fixtures())

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok", "timestamp": datetime.now().isoformat()}

    @app.get("/doctors", response_model=List[DoctorSummary])
    def list_doctors(engine: TokenEngine = Depends(get_engine)) -> List[DoctorSummary]:
        return [
            DoctorSummary(
                id=d.id, name=d.name, department=d.department, slots_count=len(d.slots)
            )
            for d in engine.list_doctors()
        ]

    @app.get("/doctors/{doctor_id}/slots")
    def get_doctor_slots(doctor_id: str, engine: TokenEngine = Depends(get_engine)):
        try:
            return engine.get_schedule_for_doctor(doctor_id)
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @app.post("/tokens", response_model=AllocationResponse, status_code=201)
    def create_token(
        body: CreateTokenRequest, engine: TokenEngine = Depends(get_engine)
    ) -> AllocationResponse:
        try:
            booking = engine.book_token(
                doctor_id=body.doctor_id,
                slot_id=body.slot_id,
                source=body.source,
                priority=body.priority,
                movable=body.movable,
                patient_id=body.patient_id,
            )
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

        decision = booking.decision
        allocated = getattr(decision, "token", None)
        displaced = getattr(decision, "displaced_token", None)
        return AllocationResponse(
            result=DecisionResponse(
                status=decision.outcome,
                reason=decision.reason,
                allocated_token=to_token_response(allocated) if allocated else None,
                displaced_token=to_token_response(displaced) if displaced else None,
            ),
            slot=to_slot_counts(booking.slot),
        )

    def release(token_id: str, engine: TokenEngine, no_show: bool) -> CancelResponse:
        try:
            if no_show:
                result = engine.mark_no_show(token_id)
            else:
                result = engine.cancel_token(token_id)
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

        if not result.removed:
            message = "Token is waitlisted; slot unchanged"
        elif no_show:
            message = "Token marked as no-show"
        else:
            message = "Token cancelled successfully"
        return CancelResponse(
            message=message,
            removed=result.removed,
            token=to_token_response(result.token),
            promoted=to_token_response(result.promoted) if result.promoted else None,
            slot=to_slot_counts(result.slot),
        )

    @app.post("/tokens/{token_id}/cancel", response_model=CancelResponse)
    def cancel_token(token_id: str, engine: TokenEngine = Depends(get_engine)) -> CancelResponse:
        return release(token_id, engine, no_show=False)

    @app.post("/tokens/{token_id}/no-show", response_model=CancelResponse)
    def mark_no_show(token_id: str, engine: TokenEngine = Depends(get_engine)) -> CancelResponse:
        return release(token_id, engine, no_show=True)

    @app.post("/tokens/{token_id}/check-in", response_model=TokenResponse)
    def check_in(token_id: str, engine: TokenEngine = Depends(get_engine)) -> TokenResponse:
        try:
            return to_token_response(engine.check_in(token_id))
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @app.post("/tokens/{token_id}/complete", response_model=TokenResponse)
    def complete(token_id: str, engine: TokenEngine = Depends(get_engine)) -> TokenResponse:
        try:
            return to_token_response(engine.complete(token_id))
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @app.post("/admin/reset")
    def reset_all(engine: TokenEngine = Depends(get_engine)) -> dict:
        engine.reset()
        return {"detail": "State re-seeded"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
    logger.info("Starting %s", config.APP_TITLE)
    uvicorn.run(app, host=config.HOST, port=config.PORT)
